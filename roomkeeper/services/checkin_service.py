import math
from datetime import timedelta

from flask import current_app

from roomkeeper.models import Reservation
from roomkeeper.models.reservation import ReservationStatus, CheckInStatus
from roomkeeper.services.operating_hours import OperatingHoursService
from roomkeeper.services.reservation_service import ReservationService
from roomkeeper.utils import clock
from roomkeeper.utils.errors import StateError
from roomkeeper.utils.timeutil import combine

class CheckInService:

    @staticmethod
    def window(reservation, tz):
        """``[start - 15 min, start + grace period]`` for the reservation's day."""
        starts_at = combine(reservation.date, reservation.start_minute, tz)
        opens = starts_at - timedelta(minutes=current_app.config['CHECK_IN_OPENS_MINUTES_BEFORE'])
        closes = starts_at + timedelta(minutes=OperatingHoursService.grace_period(reservation.room))
        return opens, closes

    @staticmethod
    def _window_details(opens, closes, reservation):
        return {
            'check_in_window': {
                'start': opens.isoformat(),
                'end': closes.isoformat(),
                'grace_period_minutes': OperatingHoursService.grace_period(reservation.room)
            }
        }

    @staticmethod
    def blocking_reason(reservation, now):
        """
        Why ``reservation`` cannot be checked in at ``now``, ignoring the
        window when it is open. Returns ``(code, message)`` or None.
        """
        if reservation.check_in_status == CheckInStatus.CHECKED_IN:
            return 'already_checked_in', "Already checked in."
        if reservation.check_in_status in CheckInStatus.RELEASED:
            return 'reservation_released', "This reservation has been released and is no longer valid."
        if reservation.status != ReservationStatus.APPROVED:
            return 'not_approved', f"Cannot check in - reservation status is {reservation.status}."
        if reservation.date != now.date():
            return 'wrong_day', "Check-in is only available on the day of the reservation."

        opens, closes = CheckInService.window(reservation, now.tzinfo)
        if now < opens:
            minutes = math.ceil((opens - now).total_seconds() / 60)
            return 'not_yet_open', f"Check-in opens in {minutes} minute{'s' if minutes > 1 else ''}."
        if now > closes:
            return 'window_closed', "Check-in window has closed."
        return None

    @staticmethod
    def check_in(reservation_id, actor=None, override=False, now=None):
        """
        Check a patron in.

        Returns ``(reservation, changed)``; checking in twice is not an error,
        the second call reports ``changed=False`` and leaves checked_in_at alone.
        ``override`` lets staff skip the window test, nothing else.
        """
        now = clock.resolve(now)
        reservation = ReservationService.get(reservation_id)
        if override:
            ReservationService.require_manager(actor, reservation)

        reason = CheckInService.blocking_reason(reservation, now)
        if reason is not None:
            code, message = reason
            if code == 'already_checked_in':
                return reservation, False
            if not (override and code in ('not_yet_open', 'window_closed')):
                opens, closes = CheckInService.window(reservation, now.tzinfo)
                raise StateError(message, code, CheckInService._window_details(opens, closes, reservation))

        changed = ReservationService.transition(
            reservation.id,
            [Reservation.status == ReservationStatus.APPROVED,
             Reservation.check_in_status == CheckInStatus.NOT_CHECKED_IN],
            {
                'check_in_status': CheckInStatus.CHECKED_IN,
                'checked_in_at': clock.stamp(now),
                'checked_in_by_id': actor.id if actor is not None else None
            }
        )
        reservation = ReservationService.get(reservation_id)

        if not changed:
            # Lost to a concurrent check-in or sweep
            if reservation.check_in_status == CheckInStatus.CHECKED_IN:
                return reservation, False
            raise StateError("This reservation has been released and is no longer valid.",
                             'reservation_released', {'check_in_status': reservation.check_in_status})

        current_app.logger.info(f"Reservation {reservation.id} checked in{' (override)' if override else ''}")
        return reservation, True

    @staticmethod
    def status(reservation_id, now=None):
        """Read-only check-in view used by kiosks before calling check_in."""
        now = clock.resolve(now)
        reservation = ReservationService.get(reservation_id)
        opens, closes = CheckInService.window(reservation, now.tzinfo)
        reason = CheckInService.blocking_reason(reservation, now)

        payload = {
            'reservation': reservation.to_dict(),
            'can_check_in': reason is None,
            'code': reason[0] if reason else 'ready',
            'message': reason[1] if reason else "Ready to check in."
        }
        payload.update(CheckInService._window_details(opens, closes, reservation))
        return payload
