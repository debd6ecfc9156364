from sqlalchemy import func

from roomkeeper.extensions import db
from roomkeeper.models import UsageAnalytics

class DemandService:

    @staticmethod
    def utilization_for_room(room_id):
        """Average reservations per (day_of_week, hour) bucket for a room."""
        rows = db.session.query(
            UsageAnalytics.day_of_week,
            UsageAnalytics.hour,
            func.avg(UsageAnalytics.reservation_count)
        ).filter(
            UsageAnalytics.room_id == room_id
        ).group_by(
            UsageAnalytics.day_of_week, UsageAnalytics.hour
        ).all()

        return {(dow, hour): float(avg or 0) for dow, hour, avg in rows}

    @staticmethod
    def max_utilization(buckets):
        # Floor at 1 so an empty history scores as uniformly quiet
        return max(list(buckets.values()) + [1])
