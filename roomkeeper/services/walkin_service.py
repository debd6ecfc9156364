from flask import current_app

from roomkeeper.extensions import db
from roomkeeper.models import Location, Room, Reservation
from roomkeeper.models.room import AvailabilityStatus
from roomkeeper.models.reservation import ReservationStatus, CheckInStatus
from roomkeeper.services.conflict_service import ConflictDetector
from roomkeeper.services.operating_hours import OperatingHoursService
from roomkeeper.services.reservation_service import ReservationService
from roomkeeper.utils import clock
from roomkeeper.utils.errors import ValidationError, NotFoundError, PolicyViolation, ConflictError
from roomkeeper.utils.timeutil import MINUTES_PER_DAY, overlaps, round_up, day_of_week, minute_of_day, to_hhmm

class WalkInService:

    @staticmethod
    def available_now(location_id=None, now=None):
        """
        Rooms that can be used right now and until when.
        Rooms freed by an auto-released (or no-show) reservation are flagged
        with ``was_released`` and the id of the reservation they replace.
        """
        now = clock.resolve(now)
        today = now.date()
        minute = minute_of_day(now)
        min_minutes = current_app.config['MIN_AVAILABLE_MINUTES']

        query = Room.query.join(Location).filter(
            Room.is_active == True,
            Room.availability_status == AvailabilityStatus.AVAILABLE,
            Location.active == True
        )
        if location_id:
            query = query.filter(Room.location_id == location_id)

        available = []
        for room in query.all():
            slot = OperatingHoursService.covering_slot(room, day_of_week(today), minute)
            if slot is None:
                continue

            reservations = Reservation.query.filter(
                Reservation.room_id == room.id,
                Reservation.date == today,
                Reservation.status.in_(ReservationStatus.OPEN)
            ).order_by(Reservation.start_minute).all()

            available_until = slot.end_minute
            released = None
            for res in reservations:
                if res.check_in_status in CheckInStatus.RELEASED and \
                        overlaps(res.start_minute, res.end_minute, minute, minute + 1):
                    released = res
                    available_until = res.end_minute
                    break

            occupied = False
            for res in reservations:
                if res.check_in_status in CheckInStatus.RELEASED:
                    continue
                if overlaps(res.start_minute, res.end_minute, minute, minute + 1):
                    occupied = True
                    break
                if minute < res.start_minute < available_until:
                    available_until = res.start_minute

            if occupied or available_until - minute < min_minutes:
                continue

            available.append({
                'room': room.to_dict(),
                'available_until': to_hhmm(available_until),
                'minutes_available': available_until - minute,
                'was_released': released is not None,
                'original_reservation_id': released.id if released else None
            })

        # Longest stretch first
        available.sort(key=lambda a: -a['minutes_available'])
        return available

    @staticmethod
    def create_walk_in(room_id, location_id, program_type_id, duration, requester,
                       original_reservation_id=None, actor=None, now=None):
        """
        Admit a walk-in: an approved, already checked-in reservation starting at
        the next quarter hour. A lost race surfaces as ConflictError; callers
        decide whether to pick another room.
        """
        now = clock.resolve(now)
        config = current_app.config
        today = now.date()

        if not isinstance(duration, int) or not config['MIN_WALK_IN_MINUTES'] <= duration <= config['MAX_WALK_IN_MINUTES']:
            raise ValidationError(
                f"Duration must be between {config['MIN_WALK_IN_MINUTES']} and {config['MAX_WALK_IN_MINUTES']} minutes.",
                'invalid_duration')
        if not requester.get('name') or not requester.get('email'):
            raise ValidationError("Requester name and email are required.", 'missing_field')

        room = db.session.get(Room, room_id)
        if room is None:
            raise NotFoundError("Room not found.", 'room_not_found')
        if not room.is_bookable:
            raise PolicyViolation("Room not available.", 'room_unavailable')
        if location_id != room.location_id:
            raise ValidationError("Room does not belong to this location.", 'location_mismatch')
        ReservationService.require_program_type(program_type_id)

        start = round_up(minute_of_day(now), config['WALK_IN_ROUNDING_MINUTES'])
        end = start + duration
        if end > MINUTES_PER_DAY or OperatingHoursService.containing_slot(room, today, start, end) is None:
            raise PolicyViolation("Room is not open for the requested duration.", 'outside_operating_hours',
                                  {'start_time': to_hhmm(start), 'end_time': to_hhmm(min(end, MINUTES_PER_DAY))})

        if original_reservation_id:
            original = db.session.get(Reservation, original_reservation_id)
            if original is None or original.room_id != room.id or original.date != today \
                    or original.check_in_status not in CheckInStatus.RELEASED:
                raise ValidationError("Original reservation is not a released booking of this room today.",
                                      'invalid_original_reservation')

        conflict = ConflictDetector.find_conflict(room.id, today, start, end)
        if conflict is not None:
            raise ConflictError("Room is no longer available for this time.", 'conflict',
                                {'conflicting_reservation': conflict.summary()})

        stamp = clock.stamp(now)
        reservation = ReservationService.insert_if_free({
            'room_id': room.id,
            'location_id': room.location_id,
            'program_type_id': program_type_id,
            'date': today,
            'start_minute': start,
            'end_minute': end,
            'status': ReservationStatus.APPROVED,
            'check_in_status': CheckInStatus.CHECKED_IN,
            'checked_in_at': stamp,
            'checked_in_by_id': actor.id if actor is not None else None,
            'approved_at': stamp,
            'is_walk_in': True,
            'original_reservation_id': original_reservation_id,
            'requester_name': requester['name'],
            'requester_email': requester['email'],
            'requester_phone': requester.get('phone') or '',
            'created_by_id': actor.id if actor is not None else None,
            'created_at': stamp,
            'updated_at': stamp,
        })

        current_app.logger.info(
            f"Walk-in {reservation.id} admitted to room {room.id} {to_hhmm(start)}-{to_hhmm(end)}")
        return reservation
