import pytest
from datetime import timedelta
from roomkeeper import db
from roomkeeper.models import UsageAnalytics
from roomkeeper.models.room import AvailabilityStatus
from roomkeeper.services.suggestion_service import SuggestionService
from roomkeeper.utils.errors import ValidationError, NotFoundError
from roomkeeper.utils.timeutil import to_minutes
from tests.conftest import MONDAY, FRIDAY, at

NOW = at(12, 0, on=FRIDAY)
WEEKDAYS = tuple((day, '09:00', '17:00') for day in range(1, 6))

def preference(start='10:00', duration=60, **kwargs):
    pref = {'preferred_date': MONDAY, 'preferred_start': to_minutes(start), 'duration': duration}
    pref.update(kwargs)
    return pref

def slots_of(suggestions):
    return [(s['date'], s['start_time']) for s in suggestions]

def test_scores_forward_days_and_gap_start(app, make_room):
    room = make_room(slots=WEEKDAYS)

    suggestions = SuggestionService.suggest_times(room.id, preference(), now=NOW)

    assert [(s['start_time'], s['score'], s['reason']) for s in suggestions] == [
        ('10:00', 128, 'Same time, 1 day later'),
        ('10:00', 126, 'Same time, 2 days later'),
        ('09:00', 125, 'Close to your preferred time'),
        ('10:00', 124, 'Same time, 3 days later'),
    ]
    assert suggestions[2]['date'] == MONDAY.isoformat()
    assert suggestions[0]['end_time'] == '11:00'

def test_scores_never_increase(app, make_room, make_reservation):
    room = make_room(slots=WEEKDAYS)
    make_reservation(room, '10:00', '11:00')
    make_reservation(room, '13:00', '14:00')

    scores = [s['score'] for s in SuggestionService.suggest_times(room.id, preference('10:30'), now=NOW)]

    assert scores == sorted(scores, reverse=True)

def test_candidates_fit_open_gaps(app, make_room, make_reservation):
    room = make_room()
    make_reservation(room, '09:00', '10:00')
    make_reservation(room, '10:30', '12:00')

    suggestions = SuggestionService.suggest_times(room.id, preference('10:00'), now=NOW)

    # 10:00-10:30 is too short for an hour
    assert slots_of(suggestions) == [(MONDAY.isoformat(), '12:00')]
    assert suggestions[0]['end_time'] == '13:00'

def test_preferred_weekday_bonus(app, make_room):
    room = make_room(slots=WEEKDAYS)
    suggestions = SuggestionService.suggest_times(room.id, preference(preferred_day_of_week=3), now=NOW)
    top = suggestions[0]
    assert top['date'] == (MONDAY + timedelta(days=2)).isoformat()
    assert top['score'] == 136

def test_busy_hours_score_lower(app, make_room):
    room = make_room(slots=WEEKDAYS)
    for week in range(1, 3):
        db.session.add(UsageAnalytics(room_id=room.id, date=MONDAY - timedelta(days=7 * week - 1),
                                      day_of_week=2, hour=10, reservation_count=4))
    db.session.commit()

    suggestions = SuggestionService.suggest_times(room.id, preference(), now=NOW)
    tuesday = next(s for s in suggestions if s['date'] == (MONDAY + timedelta(days=1)).isoformat())

    assert tuesday['score'] == 98
    assert suggestions[0]['reason'] == 'Same time, 2 days later'

def test_forward_scan_skips_occupied_days(app, make_room, make_reservation):
    room = make_room(slots=WEEKDAYS)
    make_reservation(room, '10:00', '11:00', on=MONDAY + timedelta(days=1))

    dates = [s['date'] for s in SuggestionService.suggest_times(room.id, preference(), now=NOW)]

    assert (MONDAY + timedelta(days=1)).isoformat() not in dates

def test_today_starts_after_now(app, make_room):
    room = make_room()
    suggestions = SuggestionService.suggest_times(room.id, preference('14:00'), now=at(13, 5))
    assert suggestions[0]['start_time'] == '13:15'

def test_duration_over_room_limit(app, make_room):
    room = make_room(rule={'grace_period_minutes': 15, 'max_duration_minutes': 60, 'max_advance_days': 30})
    assert SuggestionService.suggest_times(room.id, preference(duration=90), now=NOW) == []

def test_unbookable_and_unknown_rooms(app, make_room):
    room = make_room(availability_status=AvailabilityStatus.MAINTENANCE)
    assert SuggestionService.suggest_times(room.id, preference(), now=NOW) == []
    with pytest.raises(NotFoundError):
        SuggestionService.suggest_times(999, preference(), now=NOW)

@pytest.mark.parametrize('overrides', [{'duration': 0}, {'duration': 10}, {'duration': 600}, {'preferred_day_of_week': 7}])
def test_invalid_preferences(app, make_room, overrides):
    room = make_room()
    with pytest.raises(ValidationError):
        SuggestionService.suggest_times(room.id, preference(**overrides), now=NOW)

def test_preference_defaults(app):
    pref = SuggestionService.normalize_preference({}, NOW)
    assert pref['preferred_date'] == FRIDAY
    assert pref['preferred_start'] == to_minutes('09:00')
    assert pref['duration'] == 60

def test_suggest_rooms_by_capacity(app, location, make_room, make_reservation):
    small = make_room('Small', capacity=4, slots=WEEKDAYS)
    large = make_room('Large', capacity=10, slots=WEEKDAYS)
    busy = make_room('Busy', capacity=12, slots=WEEKDAYS)
    make_room('Closed', capacity=20, slots=WEEKDAYS, is_active=False)
    make_reservation(busy, '09:00', '17:00')
    make_reservation(busy, '10:00', '11:00', on=MONDAY + timedelta(days=1))

    results = SuggestionService.suggest_rooms(location.id, preference(required_capacity=6), now=NOW)

    assert [r['room_name'] for r in results] == ['Large', 'Busy']
    assert small.id not in [r['room_id'] for r in results]
    top = results[0]
    assert top['location_name'] == 'Central Library'
    assert top['capacity'] == 10
    assert len(top['available_slots']) == 3
    assert top['score'] == top['available_slots'][0]['score']
    assert large.id == top['room_id']
