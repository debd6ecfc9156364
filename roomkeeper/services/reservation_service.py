from datetime import timedelta

from flask import current_app
from sqlalchemy import select, literal, update

from roomkeeper.extensions import db
from roomkeeper.models import Room, Reservation, ProgramType
from roomkeeper.models.reservation import ReservationStatus, CheckInStatus, new_id
from roomkeeper.services.conflict_service import ConflictDetector
from roomkeeper.services.notification_service import NotificationService
from roomkeeper.services.operating_hours import OperatingHoursService
from roomkeeper.utils import clock
from roomkeeper.utils.errors import (
    ValidationError, NotFoundError, PolicyViolation, ConflictError, StateError, AuthorizationError
)
from roomkeeper.utils.timeutil import combine

REQUIRED_REQUESTER_FIELDS = ('requester_name', 'requester_email')

class ReservationService:

    @staticmethod
    def get(reservation_id):
        reservation = db.session.get(Reservation, reservation_id)
        if reservation is None:
            raise NotFoundError("Reservation not found.", 'reservation_not_found')
        return reservation

    @staticmethod
    def lock_room(room_id):
        """
        Take the room's row lock for the rest of the transaction.

        Writers on the same room queue here, so a guarded statement issued
        after the lock sees every reservation committed before it. SQLite has
        no row locks and serializes writers on the whole database instead.
        """
        return Room.query.filter_by(id=room_id).with_for_update().one()

    @staticmethod
    def insert_if_free(values):
        """
        Insert a reservation only if its interval is still free.

        The room row is locked first, then the overlap test and the insert run
        as one ``INSERT ... SELECT ... WHERE NOT EXISTS`` statement. Of two
        identical concurrent requests exactly one row lands and the other gets
        a ConflictError.
        """
        table = Reservation.__table__
        values = {k: v for k, v in values.items() if v is not None}
        values.setdefault('id', new_id())
        columns = list(values)

        ReservationService.lock_room(values['room_id'])

        source = select(
            *[literal(values[name], type_=table.c[name].type) for name in columns]
        ).where(
            ConflictDetector.interval_is_free(
                values['room_id'], values['date'], values['start_minute'], values['end_minute'])
        )
        result = db.session.execute(table.insert().from_select(columns, source))

        if result.rowcount != 1:
            db.session.rollback()
            raise ConflictError("Room is no longer available for this time.", 'conflict')

        db.session.commit()
        return db.session.get(Reservation, values['id'])

    @staticmethod
    def transition(reservation_id, conditions, values):
        """
        Apply ``values`` only while ``conditions`` still hold for the row.
        Returns True when this call performed the change.
        """
        result = db.session.execute(
            update(Reservation)
            .where(Reservation.id == reservation_id, *conditions)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        db.session.commit()
        return result.rowcount == 1

    @staticmethod
    def create_reservation(actor, data, now=None):
        """
        Main entry point to book a room.
        Privileged creators get an approved reservation straight away.
        """
        now = clock.resolve(now)

        for field in REQUIRED_REQUESTER_FIELDS:
            if not data.get(field):
                raise ValidationError(f"Missing required field: {field}.", 'missing_field')

        result = ConflictDetector.validate(
            data['room_id'], data['date'], data['start_minute'], data['end_minute'], now=now)
        ConflictDetector.raise_for(result)

        room = db.session.get(Room, data['room_id'])
        location_id = data.get('location_id') or room.location_id
        if location_id != room.location_id:
            raise ValidationError("Room does not belong to this location.", 'location_mismatch')
        ReservationService.require_program_type(data.get('program_type_id'))

        privileged = actor is not None and actor.is_privileged
        stamp = clock.stamp(now)
        reservation = ReservationService.insert_if_free({
            'room_id': room.id,
            'location_id': location_id,
            'program_type_id': data['program_type_id'],
            'date': data['date'],
            'start_minute': data['start_minute'],
            'end_minute': data['end_minute'],
            'status': ReservationStatus.APPROVED if privileged else ReservationStatus.PENDING,
            'check_in_status': CheckInStatus.NOT_CHECKED_IN,
            'approved_at': stamp if privileged else None,
            'is_walk_in': False,
            'requester_name': data['requester_name'],
            'requester_email': data['requester_email'],
            'requester_phone': data.get('requester_phone') or '',
            'library_card_id': data.get('library_card_id'),
            'organization_name': data.get('organization_name'),
            'notes': data.get('notes'),
            'created_by_id': actor.id if actor is not None else None,
            'created_at': stamp,
            'updated_at': stamp,
        })

        current_app.logger.info(
            f"Reservation {reservation.id} created for room {room.id} on {reservation.date} ({reservation.status})")
        NotificationService.confirmation(reservation)
        return reservation

    @staticmethod
    def approve(reservation_id, actor, now=None):
        return ReservationService._decide(reservation_id, actor, ReservationStatus.APPROVED, now)

    @staticmethod
    def decline(reservation_id, actor, now=None):
        return ReservationService._decide(reservation_id, actor, ReservationStatus.DECLINED, now)

    @staticmethod
    def _decide(reservation_id, actor, outcome, now):
        now = clock.resolve(now)
        reservation = ReservationService.get(reservation_id)
        ReservationService.require_manager(actor, reservation)

        stamp_field = 'approved_at' if outcome == ReservationStatus.APPROVED else 'declined_at'
        changed = ReservationService.transition(
            reservation.id,
            [Reservation.status == ReservationStatus.PENDING],
            {'status': outcome, stamp_field: clock.stamp(now)}
        )
        reservation = ReservationService.get(reservation_id)
        if not changed:
            raise StateError(
                f"Reservation is {reservation.status}, only pending reservations can be {outcome}.",
                'invalid_transition', {'status': reservation.status})

        current_app.logger.info(f"Reservation {reservation.id} {outcome} by user {actor.id}")
        if outcome == ReservationStatus.APPROVED:
            NotificationService.approval(reservation)
        else:
            NotificationService.decline(reservation)
        return reservation

    @staticmethod
    def cancel(reservation_id, actor, now=None):
        """Cancel a reservation that has not reached a check-in outcome."""
        now = clock.resolve(now)
        reservation = ReservationService.get(reservation_id)
        privileged = ReservationService.require_owner_or_manager(actor, reservation)

        if not privileged:
            starts_at = combine(reservation.date, reservation.start_minute, now.tzinfo)
            if now >= starts_at:
                raise StateError("Reservation has already started.", 'already_started')

        changed = ReservationService.transition(
            reservation.id,
            [Reservation.status.in_(ReservationStatus.OPEN),
             Reservation.check_in_status == CheckInStatus.NOT_CHECKED_IN],
            {'status': ReservationStatus.CANCELLED, 'cancelled_at': clock.stamp(now)}
        )
        reservation = ReservationService.get(reservation_id)
        if not changed:
            raise StateError(
                "Reservation can no longer be cancelled.", 'invalid_transition',
                {'status': reservation.status, 'check_in_status': reservation.check_in_status})

        current_app.logger.info(f"Reservation {reservation.id} cancelled by user {actor.id}")
        return reservation

    @staticmethod
    def reschedule(reservation_id, actor, on_date, start, end, now=None):
        """
        Move an open reservation to another interval of the same room.
        Patrons moving an approved booking send it back to pending.
        """
        now = clock.resolve(now)
        reservation = ReservationService.get(reservation_id)
        privileged = ReservationService.require_owner_or_manager(actor, reservation)

        if not reservation.is_active or reservation.check_in_status != CheckInStatus.NOT_CHECKED_IN:
            raise StateError("Only open reservations can be rescheduled.", 'invalid_transition',
                             {'status': reservation.status, 'check_in_status': reservation.check_in_status})

        result = ConflictDetector.validate(reservation.room_id, on_date, start, end,
                                           exclude_reservation_id=reservation.id, now=now)
        ConflictDetector.raise_for(result)

        values = {'date': on_date, 'start_minute': start, 'end_minute': end}
        if not privileged and reservation.status == ReservationStatus.APPROVED:
            values.update(status=ReservationStatus.PENDING, approved_at=None)

        ReservationService.lock_room(reservation.room_id)
        changed = ReservationService.transition(
            reservation.id,
            [Reservation.status.in_(ReservationStatus.OPEN),
             Reservation.check_in_status == CheckInStatus.NOT_CHECKED_IN,
             ConflictDetector.interval_is_free(reservation.room_id, on_date, start, end, reservation.id)],
            values
        )
        reservation = ReservationService.get(reservation_id)
        if not changed:
            if reservation.check_in_status != CheckInStatus.NOT_CHECKED_IN or not reservation.is_active:
                raise StateError("Reservation changed while rescheduling.", 'invalid_transition')
            raise ConflictError("Room is no longer available for this time.", 'conflict')

        current_app.logger.info(f"Reservation {reservation.id} moved to {on_date} {start}-{end}")
        return reservation

    @staticmethod
    def mark_no_show(reservation_id, actor, now=None):
        """Staff-recorded no-show once the check-in window has closed."""
        now = clock.resolve(now)
        reservation = ReservationService.get(reservation_id)
        ReservationService.require_manager(actor, reservation)

        grace = OperatingHoursService.grace_period(reservation.room)
        window_end = combine(reservation.date, reservation.start_minute, now.tzinfo) + timedelta(minutes=grace)
        if now <= window_end:
            raise StateError("Check-in window is still open.", 'window_open',
                             {'check_in_window_end': window_end.isoformat()})

        changed = ReservationService.transition(
            reservation.id,
            [Reservation.status == ReservationStatus.APPROVED,
             Reservation.check_in_status == CheckInStatus.NOT_CHECKED_IN],
            {'check_in_status': CheckInStatus.NO_SHOW, 'released_at': clock.stamp(now)}
        )
        reservation = ReservationService.get(reservation_id)
        if not changed:
            raise StateError("Only approved reservations awaiting check-in can be marked as no-show.",
                             'invalid_transition',
                             {'status': reservation.status, 'check_in_status': reservation.check_in_status})
        return reservation

    @staticmethod
    def list_reservations(actor, filters):
        query = Reservation.query

        # Staff see their location, patrons their own bookings
        if actor.role == 'staff' and actor.location_id:
            query = query.filter(Reservation.location_id == actor.location_id)
        elif not actor.is_privileged:
            query = query.filter(Reservation.created_by_id == actor.id)

        if filters.get('location_id'):
            query = query.filter(Reservation.location_id == filters['location_id'])
        if filters.get('room_id'):
            query = query.filter(Reservation.room_id == filters['room_id'])
        if filters.get('status'):
            query = query.filter(Reservation.status == filters['status'])
        if filters.get('date_from'):
            query = query.filter(Reservation.date >= filters['date_from'])
        if filters.get('date_to'):
            query = query.filter(Reservation.date <= filters['date_to'])

        return query.order_by(Reservation.date.desc(), Reservation.start_minute).all()

    @staticmethod
    def require_program_type(program_type_id):
        program_type = db.session.get(ProgramType, program_type_id) if program_type_id else None
        if program_type is None:
            raise NotFoundError("Program type not found.", 'program_type_not_found')
        if not program_type.active:
            raise PolicyViolation("Program type is no longer offered.", 'program_type_inactive')
        return program_type

    @staticmethod
    def require_manager(actor, reservation):
        if actor is None or not actor.is_privileged:
            raise AuthorizationError("Staff privilege required.", 'forbidden')
        if actor.role == 'staff' and actor.location_id and actor.location_id != reservation.location_id:
            raise AuthorizationError("Reservation belongs to another location.", 'forbidden')

    @staticmethod
    def require_owner_or_manager(actor, reservation):
        """Returns True when the actor acts with privilege rather than ownership."""
        if actor is not None and actor.is_privileged:
            ReservationService.require_manager(actor, reservation)
            return True
        if actor is None or reservation.created_by_id != actor.id:
            raise AuthorizationError("Unauthorized.", 'forbidden')
        return False
