from flask import current_app

from roomkeeper.utils.timeutil import day_of_week, minute_of_day

class OperatingHoursService:

    @staticmethod
    def slots_for(room, weekday):
        """Operating slots of ``room`` on ``weekday`` ordered by start."""
        slots = [s for s in room.operating_slots if s.day_of_week == weekday]
        return sorted(slots, key=lambda s: s.start_minute)

    @staticmethod
    def containing_slot(room, on_date, start, end):
        """The slot that fully contains ``[start, end)`` on ``on_date``, if any."""
        for slot in OperatingHoursService.slots_for(room, day_of_week(on_date)):
            if slot.contains(start, end):
                return slot
        return None

    @staticmethod
    def covering_slot(room, weekday, minute):
        for slot in OperatingHoursService.slots_for(room, weekday):
            if slot.covers(minute):
                return slot
        return None

    @staticmethod
    def grace_period(room):
        if room.booking_rule is not None:
            return room.booking_rule.grace_period_minutes
        return current_app.config['DEFAULT_GRACE_PERIOD_MINUTES']

    @staticmethod
    def within_advance_window(room, on_date, today):
        rule = room.booking_rule
        if rule is None:
            return True
        return (on_date - today).days <= rule.max_advance_days

    @staticmethod
    def rule_violation(room, on_date, start, end, now):
        """
        Check the room's booking rule limits as of ``now``.
        Returns ``(code, message)`` for the first broken limit, else None.
        """
        today = now.date()
        if on_date < today:
            return 'date_in_past', "Reservations cannot be made for a past date."
        if on_date == today and start < minute_of_day(now):
            return 'start_in_past', "Start time has already passed."

        rule = room.booking_rule
        if rule is None:
            return None

        if end - start > rule.max_duration_minutes:
            return ('exceeds_max_duration',
                    f"Maximum booking duration is {rule.max_duration_minutes} minutes.")

        if not OperatingHoursService.within_advance_window(room, on_date, today):
            return ('exceeds_advance_window',
                    f"Bookings can only be made up to {rule.max_advance_days} days in advance.")
        return None
