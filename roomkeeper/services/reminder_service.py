from datetime import timedelta

from flask import current_app
from sqlalchemy.exc import IntegrityError

from roomkeeper.extensions import db
from roomkeeper.models import Reservation, ReminderLog
from roomkeeper.models.reservation import ReservationStatus, CheckInStatus
from roomkeeper.services.notification_service import NotificationService
from roomkeeper.utils import clock
from roomkeeper.utils.timeutil import combine

class ReminderService:

    @staticmethod
    def due_reminder(hours_until_start):
        if 1 < hours_until_start <= 24:
            return '24h'
        if 0 < hours_until_start <= 1:
            return '1h'
        return None

    @staticmethod
    def process_reminders(now=None):
        """Send the 24h and 1h reminders for upcoming approved reservations, once each."""
        now = clock.resolve(now)
        today = now.date()
        result = {'processed': 0, 'sent': [], 'errors': []}

        reservations = Reservation.query.filter(
            Reservation.status == ReservationStatus.APPROVED,
            Reservation.check_in_status == CheckInStatus.NOT_CHECKED_IN,
            Reservation.date >= today,
            Reservation.date <= today + timedelta(days=1)
        ).all()

        for reservation in reservations:
            starts_at = combine(reservation.date, reservation.start_minute, now.tzinfo)
            reminder_type = ReminderService.due_reminder((starts_at - now).total_seconds() / 3600)
            result['processed'] += 1
            if reminder_type is None:
                continue
            if any(log.reminder_type == reminder_type for log in reservation.reminder_logs):
                continue

            # Claim the reminder before sending so concurrent runs cannot both send it
            log = ReminderLog(
                reservation_id=reservation.id,
                reminder_type=reminder_type,
                status='sent',
                sent_at=clock.stamp(now)
            )
            db.session.add(log)
            try:
                db.session.commit()
            except IntegrityError:
                db.session.rollback()
                continue

            if NotificationService.reminder(reservation, reminder_type):
                result['sent'].append({'reservation_id': reservation.id, 'type': reminder_type})
            else:
                log.status = 'failed'
                db.session.commit()
                result['errors'].append(f"Failed to send {reminder_type} reminder for {reservation.id}")

        current_app.logger.info(f"Processed {result['processed']} reservations, sent {len(result['sent'])} reminders")
        return result
