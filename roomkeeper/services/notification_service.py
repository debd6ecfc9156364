import requests
from flask import current_app

SUBJECTS = {
    'confirmation': 'Room Reservation Request Received',
    'approval': 'Room Reservation Approved',
    'decline': 'Room Reservation Declined',
    'released': 'Room Reservation Released - No Check-In',
    'reminder': 'Room Reservation Reminder',
}

class NotificationService:
    """
    Hands reservation events to the notification webhook.
    Delivery is best effort: failures are logged and reported as False,
    never raised into the operation that triggered them.
    """

    @staticmethod
    def dispatch(event, reservation, **extra):
        url = current_app.config.get('NOTIFICATION_WEBHOOK_URL')
        if not url:
            current_app.logger.debug(f"No notification webhook configured, skipping {event} for {reservation.id}")
            return False

        payload = {
            'event': event,
            'subject': SUBJECTS.get(event, event),
            'to': reservation.requester_email,
            'reservation': reservation.to_dict(),
        }
        payload.update(extra)

        try:
            response = requests.post(url, json=payload, timeout=current_app.config['NOTIFICATION_TIMEOUT_SECONDS'])
            response.raise_for_status()
        except requests.RequestException as e:
            current_app.logger.error(f"Failed to send {event} notification for {reservation.id}: {e}")
            return False

        current_app.logger.info(f"Sent {event} notification for {reservation.id}")
        return True

    @staticmethod
    def confirmation(reservation):
        return NotificationService.dispatch('confirmation', reservation)

    @staticmethod
    def approval(reservation):
        return NotificationService.dispatch('approval', reservation)

    @staticmethod
    def decline(reservation):
        return NotificationService.dispatch('decline', reservation)

    @staticmethod
    def released(reservation):
        return NotificationService.dispatch('released', reservation)

    @staticmethod
    def reminder(reservation, reminder_type):
        return NotificationService.dispatch('reminder', reservation, reminder_type=reminder_type)
