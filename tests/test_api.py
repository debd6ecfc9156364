import pytest
from unittest.mock import patch
from roomkeeper.models.reservation import ReservationStatus, CheckInStatus
from tests.conftest import MONDAY, FRIDAY, at

@pytest.fixture
def frozen_clock():
    with patch('roomkeeper.utils.clock.now') as mock_now:
        mock_now.return_value = at(12, on=FRIDAY)
        yield mock_now

def booking_payload(room, program_type, start='10:00', end='11:00', **overrides):
    payload = {
        'room_id': room.id,
        'program_type_id': program_type.id,
        'date': MONDAY.isoformat(),
        'start_time': start,
        'end_time': end,
        'requester_name': 'Jane Doe',
        'requester_email': 'jane@example.com'
    }
    payload.update(overrides)
    return payload

def test_health(client):
    assert client.get('/health').get_json()['status'] == 'ok'

def test_create_and_conflict(client, frozen_clock, users, auth_headers, make_room, program_type):
    room = make_room()

    response = client.post('/api/reservations/', json=booking_payload(room, program_type),
                           headers=auth_headers(users['patron']))
    assert response.status_code == 201
    assert response.get_json()['status'] == ReservationStatus.PENDING
    assert response.get_json()['start_time'] == '10:00'

    response = client.post('/api/reservations/', json=booking_payload(room, program_type, '10:30', '11:30'),
                           headers=auth_headers(users['other']))
    assert response.status_code == 409
    body = response.get_json()
    assert body['code'] == 'conflict'
    assert body['retryable'] is False
    assert body['conflicting_reservation']['start_time'] == '10:00'
    assert body['alternatives'][0]['start_time'] == '11:00'

def test_create_requires_token(client, make_room, program_type):
    response = client.post('/api/reservations/', json=booking_payload(make_room(), program_type))
    assert response.status_code == 401

def test_validate_endpoint(client, frozen_clock, make_room, make_reservation):
    room = make_room()
    make_reservation(room, '10:00', '11:00')

    response = client.post('/api/reservations/validate', json={
        'room_id': room.id, 'date': MONDAY.isoformat(), 'start_time': '10:30', 'end_time': '11:30'
    })

    body = response.get_json()
    assert response.status_code == 200
    assert body['valid'] is False
    assert body['reason'] == 'conflict'
    assert body['alternatives'][0]['reason'] == 'Close to your preferred time'

@pytest.mark.parametrize('payload, code', [
    ({'date': MONDAY.isoformat(), 'start_time': '25:00', 'end_time': '11:00'}, 'invalid_time'),
    ({'date': '19-10-2026', 'start_time': '10:00', 'end_time': '11:00'}, 'invalid_date'),
    ({'date': MONDAY.isoformat(), 'start_time': '11:00', 'end_time': '10:00'}, 'invalid_interval'),
    ({'date': MONDAY.isoformat(), 'start_time': '10:00'}, 'missing_field'),
])
def test_malformed_requests(client, frozen_clock, make_room, payload, code):
    payload['room_id'] = make_room().id
    response = client.post('/api/reservations/validate', json=payload)
    assert response.status_code == 400
    assert response.get_json()['code'] == code

def test_approve_via_patch(client, frozen_clock, users, auth_headers, make_room, make_reservation):
    res = make_reservation(make_room(), '10:00', '11:00', status=ReservationStatus.PENDING,
                           created_by=users['patron'])

    forbidden = client.patch(f'/api/reservations/{res.id}', json={'status': 'approved'},
                             headers=auth_headers(users['patron']))
    assert forbidden.status_code == 403

    response = client.patch(f'/api/reservations/{res.id}', json={'status': 'approved'},
                            headers=auth_headers(users['staff']))
    assert response.status_code == 200
    assert response.get_json()['status'] == ReservationStatus.APPROVED

    again = client.patch(f'/api/reservations/{res.id}', json={'status': 'approved'},
                         headers=auth_headers(users['staff']))
    assert again.status_code == 409

def test_get_reservation_is_owner_only(client, users, auth_headers, make_room, make_reservation):
    res = make_reservation(make_room(), '10:00', '11:00', created_by=users['patron'])
    assert client.get(f'/api/reservations/{res.id}', headers=auth_headers(users['patron'])).status_code == 200
    assert client.get(f'/api/reservations/{res.id}', headers=auth_headers(users['other'])).status_code == 403
    assert client.get('/api/reservations/nope', headers=auth_headers(users['admin'])).status_code == 404

def test_check_in_endpoint(client, frozen_clock, make_room, make_reservation):
    res = make_reservation(make_room(), '09:00', '10:00')

    frozen_clock.return_value = at(8, 30)
    early = client.post('/api/checkin/', json={'reservation_id': res.id})
    assert early.status_code == 409
    assert early.get_json()['code'] == 'not_yet_open'
    assert 'check_in_window' in early.get_json()

    frozen_clock.return_value = at(9, 10)
    first = client.post('/api/checkin/', json={'reservation_id': res.id})
    second = client.post('/api/checkin/', json={'reservation_id': res.id})
    assert first.status_code == 200
    assert first.get_json()['already_checked_in'] is False
    assert second.status_code == 200
    assert second.get_json()['already_checked_in'] is True
    assert second.get_json()['reservation']['check_in_status'] == CheckInStatus.CHECKED_IN

def test_check_in_status_endpoint(client, frozen_clock, make_room, make_reservation):
    res = make_reservation(make_room(), '09:00', '10:00')
    frozen_clock.return_value = at(9, 0)
    body = client.get(f'/api/checkin/{res.id}').get_json()
    assert body['can_check_in'] is True

def test_cron_requires_secret(client, frozen_clock, make_room, make_reservation):
    res = make_reservation(make_room(), '09:00', '10:00')
    frozen_clock.return_value = at(9, 16)

    assert client.post('/api/cron/no-show').status_code == 401
    assert client.get('/api/cron/no-show', headers={'Authorization': 'Bearer wrong'}).status_code == 401

    response = client.get('/api/cron/no-show', headers={'Authorization': 'Bearer test-cron-secret'})
    assert response.status_code == 200
    assert response.get_json()['released'] == [res.id]

def test_cron_reminders(client, frozen_clock, make_room, make_reservation):
    make_reservation(make_room(), '10:00', '11:00')
    frozen_clock.return_value = at(9, 30)
    response = client.post('/api/cron/reminders', headers={'Authorization': 'Bearer test-cron-secret'})
    assert response.status_code == 200
    assert response.get_json()['sent'][0]['type'] == '1h'

def test_walk_in_endpoints(client, frozen_clock, location, program_type, make_room, make_reservation):
    room = make_room()
    make_reservation(room, '14:30', '15:30')
    frozen_clock.return_value = at(14, 5)

    available = client.get(f'/api/walkins/available?location_id={location.id}').get_json()
    assert available['current_time'] == '14:05'
    assert available['rooms'][0]['available_until'] == '14:30'
    assert available['rooms'][0]['minutes_available'] == 25

    response = client.post('/api/walkins/', json={
        'room_id': room.id,
        'location_id': location.id,
        'program_type_id': program_type.id,
        'duration': 15,
        'requester_name': 'Walk In',
        'requester_email': 'walkin@example.com'
    })
    assert response.status_code == 201
    assert response.get_json()['reservation']['is_walk_in'] is True
    assert response.get_json()['reservation']['start_time'] == '14:15'

def test_suggestion_endpoints(client, frozen_clock, location, make_room):
    room = make_room(slots=tuple((day, '09:00', '17:00') for day in range(1, 6)))

    times = client.post('/api/suggestions/times', json={
        'room_id': room.id, 'preferred_date': MONDAY.isoformat(), 'preferred_start_time': '10:00'
    }).get_json()
    assert times['total_found'] == 4
    assert times['suggestions'][0]['score'] == 128

    rooms = client.post('/api/suggestions/rooms', json={
        'location_id': location.id, 'preferred_date': MONDAY.isoformat(), 'required_capacity': 50
    }).get_json()
    assert rooms == {'suggestions': [], 'total_found': 0}

def test_database_errors_are_retryable(client, frozen_clock, make_room):
    from sqlalchemy.exc import OperationalError
    room = make_room()
    with patch('roomkeeper.services.conflict_service.ConflictDetector.find_conflict',
               side_effect=OperationalError('SELECT', {}, Exception('database is locked'))):
        response = client.post('/api/reservations/validate', json={
            'room_id': room.id, 'date': MONDAY.isoformat(), 'start_time': '10:00', 'end_time': '11:00'
        })
    assert response.status_code == 503
    assert response.get_json()['retryable'] is True

def test_check_in_override_flag_is_parsed_strictly(client, frozen_clock, make_room, make_reservation):
    res = make_reservation(make_room(), '09:00', '10:00')
    frozen_clock.return_value = at(9, 5)

    invalid = client.post('/api/checkin/', json={'reservation_id': res.id, 'override': 'maybe'})
    assert invalid.status_code == 400
    assert invalid.get_json()['code'] == 'invalid_field'

    # Kiosks send the flag as text
    response = client.post('/api/checkin/', json={'reservation_id': res.id, 'override': 'false'})
    assert response.status_code == 200
    assert response.get_json()['already_checked_in'] is False
