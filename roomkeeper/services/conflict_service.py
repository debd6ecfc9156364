from sqlalchemy import select

from roomkeeper.extensions import db
from roomkeeper.models import Room, Reservation
from roomkeeper.models.reservation import ReservationStatus, CheckInStatus
from roomkeeper.services.operating_hours import OperatingHoursService
from roomkeeper.utils import clock
from roomkeeper.utils.errors import ValidationError, NotFoundError, PolicyViolation, ConflictError
from roomkeeper.utils.timeutil import MINUTES_PER_DAY, overlaps, overlap_filter

# reason code -> error raised when a create request fails validation
_REASON_ERRORS = {
    'room_not_found': NotFoundError,
    'room_inactive': PolicyViolation,
    'room_unavailable': PolicyViolation,
    'outside_operating_hours': PolicyViolation,
    'date_in_past': PolicyViolation,
    'start_in_past': PolicyViolation,
    'exceeds_max_duration': PolicyViolation,
    'exceeds_advance_window': PolicyViolation,
    'conflict': ConflictError,
}

class ConflictDetector:

    @staticmethod
    def check_interval(start, end):
        if not isinstance(start, int) or not isinstance(end, int):
            raise ValidationError("Start and end must be minutes since midnight.", 'invalid_interval')
        if start < 0 or end > MINUTES_PER_DAY:
            raise ValidationError("Interval must lie within a single day.", 'invalid_interval')
        if start >= end:
            raise ValidationError("Start time must be before end time.", 'invalid_interval')

    @staticmethod
    def active_reservations(room_id, on_date, exclude_reservation_id=None):
        """Reservations still holding an interval on ``room_id`` for ``on_date``."""
        query = Reservation.query.filter(
            Reservation.room_id == room_id,
            Reservation.date == on_date,
            Reservation.status.in_(ReservationStatus.OPEN),
            Reservation.check_in_status.notin_(CheckInStatus.RELEASED)
        )
        if exclude_reservation_id:
            query = query.filter(Reservation.id != exclude_reservation_id)
        return query.order_by(Reservation.start_minute).all()

    @staticmethod
    def find_conflict(room_id, on_date, start, end, exclude_reservation_id=None):
        for reservation in ConflictDetector.active_reservations(room_id, on_date, exclude_reservation_id):
            if overlaps(reservation.start_minute, reservation.end_minute, start, end):
                return reservation
        return None

    @staticmethod
    def interval_is_free(room_id, on_date, start, end, exclude_reservation_id=None):
        """
        SQL condition that holds while no active reservation overlaps the
        interval. Used to guard inserts/updates so check and write are a
        single statement; callers hold the room lock
        (``ReservationService.lock_room``) while it runs.
        """
        other = Reservation.__table__.alias('other')
        query = select(other.c.id).where(
            other.c.room_id == room_id,
            other.c.date == on_date,
            other.c.status.in_(ReservationStatus.OPEN),
            other.c.check_in_status.notin_(CheckInStatus.RELEASED),
            overlap_filter(other.c.start_minute, other.c.end_minute, start, end)
        )
        if exclude_reservation_id:
            query = query.where(other.c.id != exclude_reservation_id)
        return ~query.exists()

    @staticmethod
    def validate(room_id, on_date, start, end, exclude_reservation_id=None, now=None):
        """
        Decide whether ``[start, end)`` on ``on_date`` can be booked in ``room_id``.

        Checks run in order: room state, operating hours, booking rule limits,
        overlap with active reservations. Failures caused by operating hours or
        an overlap come back with scored alternatives.
        """
        ConflictDetector.check_interval(start, end)
        now = clock.resolve(now)

        room = db.session.get(Room, room_id)
        if room is None:
            return _invalid('room_not_found', "Room not found.")
        if not room.is_active or not room.location.active:
            return _invalid('room_inactive', "Room not available.")
        if not room.is_bookable:
            return _invalid('room_unavailable', f"Room is currently {room.availability_status}.")

        from roomkeeper.services.suggestion_service import SuggestionService

        if OperatingHoursService.containing_slot(room, on_date, start, end) is None:
            return _invalid(
                'outside_operating_hours',
                "Room not available at this time.",
                alternatives=SuggestionService.alternatives_for(room, on_date, start, end, now)
            )

        violation = OperatingHoursService.rule_violation(room, on_date, start, end, now)
        if violation:
            return _invalid(*violation)

        conflict = ConflictDetector.find_conflict(room.id, on_date, start, end, exclude_reservation_id)
        if conflict is not None:
            return _invalid(
                'conflict',
                "Time slot conflicts with an existing reservation.",
                conflict=conflict.summary(),
                alternatives=SuggestionService.alternatives_for(
                    room, on_date, start, end, now, exclude_reservation_id)
            )

        return {'valid': True, 'reason': None, 'error': None, 'conflict': None, 'alternatives': []}

    @staticmethod
    def raise_for(result):
        """Turn an invalid ``validate`` result into the matching error."""
        if result['valid']:
            return
        error_cls = _REASON_ERRORS.get(result['reason'], PolicyViolation)
        details = {'alternatives': result['alternatives']}
        if result['conflict']:
            details['conflicting_reservation'] = result['conflict']
        raise error_cls(result['error'], result['reason'], details)


def _invalid(reason, message, conflict=None, alternatives=None):
    return {
        'valid': False,
        'reason': reason,
        'error': message,
        'conflict': conflict,
        'alternatives': alternatives or []
    }
