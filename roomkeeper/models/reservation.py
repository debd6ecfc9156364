import uuid
from datetime import datetime

from roomkeeper.extensions import db
from roomkeeper.utils.timeutil import to_hhmm

class ReservationStatus:
    PENDING = 'pending'
    APPROVED = 'approved'
    DECLINED = 'declined'
    CANCELLED = 'cancelled'

    OPEN = (PENDING, APPROVED)


class CheckInStatus:
    NOT_CHECKED_IN = 'not_checked_in'
    CHECKED_IN = 'checked_in'
    NO_SHOW = 'no_show'
    AUTO_RELEASED = 'auto_released'

    # Reservations in these states no longer hold their interval
    RELEASED = (NO_SHOW, AUTO_RELEASED)


def new_id():
    return str(uuid.uuid4())


class Reservation(db.Model):
    __tablename__ = 'reservations'

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    room_id = db.Column(db.Integer, db.ForeignKey('rooms.id'), nullable=False)
    location_id = db.Column(db.Integer, db.ForeignKey('locations.id'), nullable=False)
    program_type_id = db.Column(db.Integer, db.ForeignKey('program_types.id'), nullable=False)

    date = db.Column(db.Date, nullable=False)
    start_minute = db.Column(db.Integer, nullable=False)
    end_minute = db.Column(db.Integer, nullable=False)

    status = db.Column(db.String(20), nullable=False, default=ReservationStatus.PENDING)
    check_in_status = db.Column(db.String(20), nullable=False, default=CheckInStatus.NOT_CHECKED_IN)
    checked_in_at = db.Column(db.DateTime)
    checked_in_by_id = db.Column(db.Integer, db.ForeignKey('users.id'))
    released_at = db.Column(db.DateTime)
    approved_at = db.Column(db.DateTime)
    declined_at = db.Column(db.DateTime)
    cancelled_at = db.Column(db.DateTime)

    is_walk_in = db.Column(db.Boolean, nullable=False, default=False)
    # Released reservation a walk-in took over
    original_reservation_id = db.Column(db.String(36), db.ForeignKey('reservations.id'))

    requester_name = db.Column(db.String(128), nullable=False)
    requester_email = db.Column(db.String(255), nullable=False)
    requester_phone = db.Column(db.String(32), default='')
    library_card_id = db.Column(db.String(64))
    organization_name = db.Column(db.String(128))
    notes = db.Column(db.Text)

    created_by_id = db.Column(db.Integer, db.ForeignKey('users.id'))
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    room = db.relationship('Room', lazy='joined')
    location = db.relationship('Location')
    program_type = db.relationship('ProgramType')
    reminder_logs = db.relationship('ReminderLog', backref='reservation', lazy=True)

    __table_args__ = (
        db.Index('ix_reservations_room_date', 'room_id', 'date'),
        db.CheckConstraint('start_minute < end_minute', name='check_reservation_interval'),
    )

    @property
    def is_active(self):
        """Still holds its interval against other bookings."""
        return (self.status in ReservationStatus.OPEN
                and self.check_in_status not in CheckInStatus.RELEASED)

    @property
    def duration_minutes(self):
        return self.end_minute - self.start_minute

    def summary(self):
        return {
            'id': self.id,
            'start_time': to_hhmm(self.start_minute),
            'end_time': to_hhmm(self.end_minute),
            'requester_name': self.requester_name
        }

    def to_dict(self):
        return {
            'id': self.id,
            'room_id': self.room_id,
            'room': self.room.name if self.room else None,
            'location_id': self.location_id,
            'program_type_id': self.program_type_id,
            'date': self.date.isoformat(),
            'start_time': to_hhmm(self.start_minute),
            'end_time': to_hhmm(self.end_minute),
            'status': self.status,
            'check_in_status': self.check_in_status,
            'checked_in_at': self.checked_in_at.isoformat() if self.checked_in_at else None,
            'released_at': self.released_at.isoformat() if self.released_at else None,
            'is_walk_in': self.is_walk_in,
            'original_reservation_id': self.original_reservation_id,
            'requester_name': self.requester_name,
            'requester_email': self.requester_email,
            'requester_phone': self.requester_phone,
            'notes': self.notes
        }


class ReminderLog(db.Model):
    __tablename__ = 'reminder_logs'

    id = db.Column(db.Integer, primary_key=True)
    reservation_id = db.Column(db.String(36), db.ForeignKey('reservations.id'), nullable=False)
    reminder_type = db.Column(db.String(8), nullable=False) # 24h, 1h
    status = db.Column(db.String(10), nullable=False) # sent, failed
    sent_at = db.Column(db.DateTime, default=datetime.utcnow)

    __table_args__ = (
        db.UniqueConstraint('reservation_id', 'reminder_type', name='uniq_reminder_per_type'),
    )
