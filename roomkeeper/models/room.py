from roomkeeper.extensions import db
from roomkeeper.utils.timeutil import to_hhmm

class AvailabilityStatus:
    AVAILABLE = 'available'
    UNAVAILABLE = 'unavailable'
    MAINTENANCE = 'maintenance'


class Room(db.Model):
    __tablename__ = 'rooms'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(64), nullable=False)
    location_id = db.Column(db.Integer, db.ForeignKey('locations.id'), nullable=False, index=True)
    capacity = db.Column(db.Integer, nullable=False)
    is_active = db.Column(db.Boolean, default=True)
    availability_status = db.Column(db.String(20), default=AvailabilityStatus.AVAILABLE)

    operating_slots = db.relationship('OperatingSlot', backref='room', lazy=True,
                                      cascade='all, delete-orphan')
    booking_rule = db.relationship('BookingRule', backref='room', uselist=False,
                                   cascade='all, delete-orphan')

    __table_args__ = (
        db.CheckConstraint('capacity > 0', name='check_capacity_positive'),
    )

    @property
    def is_bookable(self):
        return (bool(self.is_active) and self.availability_status == AvailabilityStatus.AVAILABLE
                and (self.location is None or bool(self.location.active)))

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'capacity': self.capacity,
            'location': self.location.to_dict() if self.location else None,
            'is_active': self.is_active,
            'availability_status': self.availability_status
        }


class OperatingSlot(db.Model):
    """Recurring weekly window in which a room accepts bookings."""
    __tablename__ = 'operating_slots'

    id = db.Column(db.Integer, primary_key=True)
    room_id = db.Column(db.Integer, db.ForeignKey('rooms.id'), nullable=False, index=True)
    day_of_week = db.Column(db.Integer, nullable=False) # 0 = Sunday
    start_minute = db.Column(db.Integer, nullable=False)
    end_minute = db.Column(db.Integer, nullable=False)

    __table_args__ = (
        db.CheckConstraint('day_of_week BETWEEN 0 AND 6', name='check_slot_weekday'),
        db.CheckConstraint('start_minute < end_minute', name='check_slot_interval'),
    )

    def contains(self, start, end):
        return self.start_minute <= start and end <= self.end_minute

    def covers(self, minute):
        return self.start_minute <= minute < self.end_minute

    def to_dict(self):
        return {
            'day_of_week': self.day_of_week,
            'start_time': to_hhmm(self.start_minute),
            'end_time': to_hhmm(self.end_minute)
        }


class BookingRule(db.Model):
    __tablename__ = 'booking_rules'

    id = db.Column(db.Integer, primary_key=True)
    room_id = db.Column(db.Integer, db.ForeignKey('rooms.id'), unique=True, nullable=False)
    grace_period_minutes = db.Column(db.Integer, nullable=False, default=15)
    max_duration_minutes = db.Column(db.Integer, nullable=False, default=240)
    max_advance_days = db.Column(db.Integer, nullable=False, default=30)

    def to_dict(self):
        return {
            'grace_period_minutes': self.grace_period_minutes,
            'max_duration_minutes': self.max_duration_minutes,
            'max_advance_days': self.max_advance_days
        }
