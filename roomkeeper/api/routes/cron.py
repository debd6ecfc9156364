from flask import Blueprint, jsonify
from roomkeeper.services.reminder_service import ReminderService
from roomkeeper.services.sweep_service import SweepService
from roomkeeper.utils import clock
from roomkeeper.utils.decorators import cron_secret_required

cron_bp = Blueprint('cron', __name__)

# GET for the scheduler, POST for manual triggering

@cron_bp.route('/no-show', methods=['GET', 'POST'])
@cron_secret_required
def process_no_shows():
    result = SweepService.run_grace_sweep()
    return jsonify({
        'success': True,
        'message': f"Processed {result['processed']} no-shows",
        'released': result['released'],
        'errors': result['errors'] or None,
        'timestamp': clock.now().isoformat()
    })

@cron_bp.route('/reminders', methods=['GET', 'POST'])
@cron_secret_required
def process_reminders():
    result = ReminderService.process_reminders()
    return jsonify({
        'success': True,
        'message': f"Processed {result['processed']} reservations, sent {len(result['sent'])} reminders",
        'sent': result['sent'],
        'errors': result['errors'] or None,
        'timestamp': clock.now().isoformat()
    })
