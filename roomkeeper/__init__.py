import click
from flask import Flask, jsonify
from sqlalchemy.exc import SQLAlchemyError
from roomkeeper.config import DevelopmentConfig
from roomkeeper.extensions import db, migrate
from roomkeeper.utils.errors import ReservationError, ServiceError

def create_app(config_class=DevelopmentConfig):
    app = Flask(__name__)
    app.config.from_object(config_class)
    app.logger.setLevel(app.config['LOG_LEVEL'])

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    from roomkeeper import models  # noqa: F401 - register tables with the metadata

    # Register Blueprints
    from roomkeeper.api.routes.reservations import reservations_bp
    from roomkeeper.api.routes.checkin import checkin_bp
    from roomkeeper.api.routes.suggestions import suggestions_bp
    from roomkeeper.api.routes.walkins import walkins_bp
    from roomkeeper.api.routes.cron import cron_bp

    app.register_blueprint(reservations_bp, url_prefix='/api/reservations')
    app.register_blueprint(checkin_bp, url_prefix='/api/checkin')
    app.register_blueprint(suggestions_bp, url_prefix='/api/suggestions')
    app.register_blueprint(walkins_bp, url_prefix='/api/walkins')
    app.register_blueprint(cron_bp, url_prefix='/api/cron')

    register_error_handlers(app)
    register_commands(app)

    @app.route('/health')
    def health():
        return {"status": "ok", "app": "roomkeeper"}

    return app

def register_error_handlers(app):

    @app.errorhandler(ReservationError)
    def handle_reservation_error(e):
        if e.status_code >= 500:
            app.logger.error(f"{e.error_code}: {e.message}")
        else:
            app.logger.info(f"Rejected request ({e.error_code}): {e.message}")
        return jsonify(e.to_dict()), e.status_code

    @app.errorhandler(SQLAlchemyError)
    def handle_database_error(e):
        db.session.rollback()
        app.logger.exception(f"Database error: {e}")
        error = ServiceError("Storage temporarily unavailable, please retry.", 'service_unavailable')
        return jsonify(error.to_dict()), error.status_code

def register_commands(app):

    @app.cli.command('grace-sweep')
    def grace_sweep():
        """Auto-release reservations whose grace period has passed."""
        from roomkeeper.services.sweep_service import SweepService
        result = SweepService.run_grace_sweep()
        click.echo(f"Released {result['processed']} reservation(s)")
        for error in result['errors']:
            click.echo(error, err=True)

    @app.cli.command('send-reminders')
    def send_reminders():
        """Send due 24h / 1h reservation reminders."""
        from roomkeeper.services.reminder_service import ReminderService
        result = ReminderService.process_reminders()
        click.echo(f"Sent {len(result['sent'])} reminder(s)")
        for error in result['errors']:
            click.echo(error, err=True)
