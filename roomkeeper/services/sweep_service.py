from datetime import timedelta

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from roomkeeper.extensions import db
from roomkeeper.models import Reservation
from roomkeeper.models.reservation import ReservationStatus, CheckInStatus
from roomkeeper.services.notification_service import NotificationService
from roomkeeper.services.operating_hours import OperatingHoursService
from roomkeeper.services.reservation_service import ReservationService
from roomkeeper.utils import clock
from roomkeeper.utils.timeutil import combine

class SweepService:

    @staticmethod
    def run_grace_sweep(now=None):
        """
        Auto-release today's approved reservations nobody checked in to
        before the grace period ran out.

        Each release is a guarded update on ``check_in_status =
        not_checked_in``, so overlapping or repeated sweeps release (and
        notify) every reservation exactly once.
        """
        now = clock.resolve(now)
        result = {'processed': 0, 'released': [], 'errors': []}

        reservations = Reservation.query.filter(
            Reservation.date == now.date(),
            Reservation.status == ReservationStatus.APPROVED,
            Reservation.check_in_status == CheckInStatus.NOT_CHECKED_IN
        ).all()

        for reservation in reservations:
            grace = OperatingHoursService.grace_period(reservation.room)
            grace_ends = combine(reservation.date, reservation.start_minute, now.tzinfo) + timedelta(minutes=grace)
            if now <= grace_ends:
                continue

            try:
                released = ReservationService.transition(
                    reservation.id,
                    [Reservation.status == ReservationStatus.APPROVED,
                     Reservation.check_in_status == CheckInStatus.NOT_CHECKED_IN],
                    {'check_in_status': CheckInStatus.AUTO_RELEASED, 'released_at': clock.stamp(now)}
                )
            except SQLAlchemyError as e:
                db.session.rollback()
                current_app.logger.error(f"Failed to release reservation {reservation.id}: {e}")
                result['errors'].append(f"Failed to process {reservation.id}: {e}")
                continue

            if not released:
                # Checked in or released by someone else in the meantime
                continue

            result['processed'] += 1
            result['released'].append(reservation.id)
            current_app.logger.info(f"Reservation {reservation.id} auto-released after {grace} minute grace period")
            NotificationService.released(ReservationService.get(reservation.id))

        return result
