import pytest
import jwt
import pytz
from datetime import date, datetime
from unittest.mock import patch
from roomkeeper import create_app, db
from roomkeeper.config import TestingConfig
from roomkeeper.models import Location, ProgramType, User, Room, OperatingSlot, BookingRule, Reservation
from roomkeeper.models.reservation import ReservationStatus, CheckInStatus
from roomkeeper.utils.timeutil import to_minutes

FRIDAY = date(2026, 10, 16)
MONDAY = date(2026, 10, 19)

def at(hour, minute=0, on=MONDAY):
    """Aware UTC moment (TestingConfig runs the clock in UTC)."""
    return pytz.utc.localize(datetime(on.year, on.month, on.day, hour, minute))

@pytest.fixture
def app():
    app = create_app(TestingConfig)
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()

@pytest.fixture
def client(app):
    return app.test_client()

@pytest.fixture(autouse=True)
def mock_notify():
    with patch('roomkeeper.services.notification_service.requests.post') as mock_post:
        yield mock_post

@pytest.fixture
def location(app):
    loc = Location(name='Central Library')
    db.session.add(loc)
    db.session.commit()
    return loc

@pytest.fixture
def program_type(app):
    pt = ProgramType(name='Study Group')
    db.session.add(pt)
    db.session.commit()
    return pt

@pytest.fixture
def users(app, location):
    people = {
        'admin': User(name='Admin', email='admin@test.com', role='admin'),
        'staff': User(name='Desk', email='desk@test.com', role='staff', location_id=location.id),
        'patron': User(name='Pat', email='pat@test.com', role='patron'),
        'other': User(name='Other', email='other@test.com', role='patron'),
    }
    db.session.add_all(people.values())
    db.session.commit()
    return people

@pytest.fixture
def auth_headers(app):
    def _auth_headers(user):
        token = jwt.encode({'user_id': user.id}, app.config['SECRET_KEY'], algorithm="HS256")
        return {'Authorization': f'Bearer {token}'}
    return _auth_headers

# Factories
@pytest.fixture
def make_room(app, location):
    def _make_room(name='Room R', capacity=6, slots=((1, '09:00', '17:00'),), rule=None, **kwargs):
        room = Room(name=name, capacity=capacity, location_id=location.id, **kwargs)
        for day, start, end in slots:
            room.operating_slots.append(
                OperatingSlot(day_of_week=day, start_minute=to_minutes(start), end_minute=to_minutes(end)))
        if rule:
            room.booking_rule = BookingRule(**rule)
        db.session.add(room)
        db.session.commit()
        return room
    return _make_room

@pytest.fixture
def make_reservation(app, program_type):
    def _make_reservation(room, start, end, on=MONDAY, status=ReservationStatus.APPROVED,
                          check_in_status=CheckInStatus.NOT_CHECKED_IN, created_by=None, **kwargs):
        res = Reservation(
            room_id=room.id,
            location_id=room.location_id,
            program_type_id=program_type.id,
            date=on,
            start_minute=to_minutes(start),
            end_minute=to_minutes(end),
            status=status,
            check_in_status=check_in_status,
            requester_name='Jane Doe',
            requester_email='jane@example.com',
            created_by_id=created_by.id if created_by else None,
            **kwargs
        )
        db.session.add(res)
        db.session.commit()
        return res
    return _make_reservation

@pytest.fixture
def booking_data(program_type):
    def _booking_data(room, start, end, on=MONDAY, **overrides):
        data = {
            'room_id': room.id,
            'program_type_id': program_type.id,
            'date': on,
            'start_minute': to_minutes(start),
            'end_minute': to_minutes(end),
            'requester_name': 'Jane Doe',
            'requester_email': 'jane@example.com',
            'requester_phone': '555-0100'
        }
        data.update(overrides)
        return data
    return _booking_data
