import math
from datetime import timedelta

from flask import current_app

from roomkeeper.extensions import db
from roomkeeper.models import Room
from roomkeeper.services.conflict_service import ConflictDetector
from roomkeeper.services.demand_service import DemandService
from roomkeeper.services.operating_hours import OperatingHoursService
from roomkeeper.utils import clock
from roomkeeper.utils.errors import ValidationError, NotFoundError
from roomkeeper.utils.timeutil import (
    MINUTES_PER_DAY, overlaps, round_up, day_of_week, minute_of_day, day_label, to_hhmm, to_minutes
)

MIN_DURATION = 15
MAX_DURATION = 480

class SuggestionService:

    @staticmethod
    def free_gaps(room, on_date, reservations, floor=None):
        """
        Open intervals of ``room`` on ``on_date``: its operating slots minus
        ``reservations``, optionally starting no earlier than ``floor``.
        """
        gaps = []
        for slot in OperatingHoursService.slots_for(room, day_of_week(on_date)):
            cursor = slot.start_minute if floor is None else max(slot.start_minute, floor)
            for res in reservations:
                if not overlaps(res.start_minute, res.end_minute, cursor, slot.end_minute):
                    continue
                if res.start_minute > cursor:
                    gaps.append((cursor, res.start_minute))
                cursor = max(cursor, res.end_minute)
            if cursor < slot.end_minute:
                gaps.append((cursor, slot.end_minute))
        return gaps

    @staticmethod
    def score(start, preferred_start, weekday, preferred_weekday, utilization, max_utilization, day_offset):
        hours_away = abs(start - preferred_start) / 60
        score = 100 - 5 * hours_away
        if preferred_weekday is not None and weekday == preferred_weekday:
            score += 10
        score += 30 * (1 - utilization / max_utilization)
        score -= 2 * day_offset
        # half-up, so 127.5 scores 128
        return max(0, int(math.floor(score + 0.5)))

    @staticmethod
    def candidates(room, base_date, preferred_start, duration, now,
                   preferred_weekday=None, exclude_reservation_id=None):
        """
        All scored candidates for ``room``: one per free gap on ``base_date``
        long enough for ``duration``, plus the same time-of-day on each of the
        following days when it is open and unoccupied. Unsorted.
        """
        config = current_app.config
        today = now.date()
        today_floor = round_up(minute_of_day(now), config['WALK_IN_ROUNDING_MINUTES'])
        buckets = DemandService.utilization_for_room(room.id)
        max_utilization = DemandService.max_utilization(buckets)

        rule = room.booking_rule
        if rule is not None and duration > rule.max_duration_minutes:
            return []

        results = []

        def add(on_date, start, day_offset, forward):
            weekday = day_of_week(on_date)
            utilization = buckets.get((weekday, start // 60), 0)
            hours_away = abs(start - preferred_start) / 60
            if forward:
                reason = f"Same time, {day_offset} day{'s' if day_offset > 1 else ''} later"
            elif hours_away <= 1:
                reason = 'Close to your preferred time'
            elif utilization < max_utilization * 0.3:
                reason = 'Low demand'
            else:
                reason = day_label((on_date - today).days, on_date)
            results.append({
                'date': on_date.isoformat(),
                'start_time': to_hhmm(start),
                'end_time': to_hhmm(start + duration),
                'score': SuggestionService.score(start, preferred_start, weekday, preferred_weekday,
                                                 utilization, max_utilization, day_offset),
                'reason': reason
            })

        if base_date >= today and OperatingHoursService.within_advance_window(room, base_date, today):
            reservations = ConflictDetector.active_reservations(room.id, base_date, exclude_reservation_id)
            floor = today_floor if base_date == today else None
            for gap_start, gap_end in SuggestionService.free_gaps(room, base_date, reservations, floor):
                if gap_end - gap_start >= duration:
                    add(base_date, gap_start, 0, forward=False)

        end = preferred_start + duration
        if end <= MINUTES_PER_DAY:
            for offset in range(1, config['FORWARD_SCAN_DAYS'] + 1):
                on_date = base_date + timedelta(days=offset)
                if on_date < today or (on_date == today and preferred_start < today_floor):
                    continue
                if not OperatingHoursService.within_advance_window(room, on_date, today):
                    break
                if OperatingHoursService.containing_slot(room, on_date, preferred_start, end) is None:
                    continue
                if ConflictDetector.find_conflict(room.id, on_date, preferred_start, end,
                                                  exclude_reservation_id) is not None:
                    continue
                add(on_date, preferred_start, offset, forward=True)

        return results

    @staticmethod
    def rank(candidates, limit):
        # sorted() is stable: equal scores keep date/time order
        return sorted(candidates, key=lambda c: -c['score'])[:limit]

    @staticmethod
    def alternatives_for(room, on_date, start, end, now, exclude_reservation_id=None):
        """Alternatives embedded in a failed validation."""
        candidates = SuggestionService.candidates(
            room, on_date, start, end - start, now,
            exclude_reservation_id=exclude_reservation_id
        )
        return SuggestionService.rank(candidates, current_app.config['MAX_VALIDATION_ALTERNATIVES'])

    @staticmethod
    def normalize_preference(preference, now):
        duration = preference.get('duration')
        if duration is None:
            duration = 60
        if not isinstance(duration, int) or not MIN_DURATION <= duration <= MAX_DURATION:
            raise ValidationError(
                f"Duration must be between {MIN_DURATION} and {MAX_DURATION} minutes.", 'invalid_duration')

        weekday = preference.get('preferred_day_of_week')
        if weekday is not None and weekday not in range(7):
            raise ValidationError("preferred_day_of_week must be between 0 and 6.", 'invalid_weekday')

        preferred_start = preference.get('preferred_start')
        if preferred_start is None:
            preferred_start = to_minutes(current_app.config['DEFAULT_PREFERRED_START'])

        return {
            'preferred_date': preference.get('preferred_date') or now.date(),
            'preferred_start': preferred_start,
            'preferred_day_of_week': weekday,
            'duration': duration,
            'required_capacity': preference.get('required_capacity')
        }

    @staticmethod
    def suggest_times(room_id, preference, now=None):
        """Best alternative slots for one room, highest score first."""
        now = clock.resolve(now)
        pref = SuggestionService.normalize_preference(preference, now)

        room = db.session.get(Room, room_id)
        if room is None:
            raise NotFoundError("Room not found.", 'room_not_found')
        if not room.is_bookable:
            return []

        return SuggestionService._suggest_for_room(room, pref, now, current_app.config['MAX_TIME_SUGGESTIONS'])

    @staticmethod
    def suggest_rooms(location_id, preference, now=None):
        """Rooms of a location ranked by their best candidate slot."""
        now = clock.resolve(now)
        pref = SuggestionService.normalize_preference(preference, now)

        query = Room.query.filter(Room.location_id == location_id, Room.is_active == True)
        if pref['required_capacity']:
            query = query.filter(Room.capacity >= pref['required_capacity'])

        suggestions = []
        for room in query.all():
            if not room.is_bookable:
                continue
            slots = SuggestionService._suggest_for_room(room, pref, now, current_app.config['MAX_TIME_SUGGESTIONS'])
            if not slots:
                continue
            suggestions.append({
                'room_id': room.id,
                'room_name': room.name,
                'location_name': room.location.name if room.location else None,
                'capacity': room.capacity,
                'score': slots[0]['score'],
                'available_slots': slots[:current_app.config['MAX_SLOTS_PER_ROOM']]
            })

        suggestions.sort(key=lambda s: -s['score'])
        return suggestions

    @staticmethod
    def _suggest_for_room(room, pref, now, limit):
        candidates = SuggestionService.candidates(
            room, pref['preferred_date'], pref['preferred_start'], pref['duration'], now,
            preferred_weekday=pref['preferred_day_of_week']
        )
        return SuggestionService.rank(candidates, limit)
