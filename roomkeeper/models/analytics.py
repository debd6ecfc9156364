from roomkeeper.extensions import db

class UsageAnalytics(db.Model):
    """
    Hourly usage buckets written by the nightly aggregation job.
    Read-only here: the suggestion engine only consumes it for scoring.
    """
    __tablename__ = 'usage_analytics'

    id = db.Column(db.Integer, primary_key=True)
    room_id = db.Column(db.Integer, db.ForeignKey('rooms.id'), nullable=False, index=True)
    date = db.Column(db.Date, nullable=False)
    day_of_week = db.Column(db.Integer, nullable=False) # 0 = Sunday
    hour = db.Column(db.Integer, nullable=False)
    reservation_count = db.Column(db.Integer, default=0)

    __table_args__ = (
        db.UniqueConstraint('room_id', 'date', 'hour', name='uniq_usage_bucket'),
    )
