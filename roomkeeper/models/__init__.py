from roomkeeper.models.location import Location, ProgramType
from roomkeeper.models.user import User
from roomkeeper.models.room import Room, OperatingSlot, BookingRule
from roomkeeper.models.reservation import Reservation, ReminderLog
from roomkeeper.models.analytics import UsageAnalytics
