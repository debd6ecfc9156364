from datetime import datetime

import pytz
from flask import current_app


def zone():
    """The configured wall-clock zone."""
    return pytz.timezone(current_app.config['TIMEZONE'])


def now():
    return datetime.now(zone())


def localize(moment):
    """Attach (naive) or convert (aware) ``moment`` to the configured zone."""
    tz = zone()
    if moment.tzinfo is None:
        return tz.localize(moment)
    return moment.astimezone(tz)


def resolve(moment=None):
    """``moment`` in the configured zone, defaulting to the current time."""
    if moment is None:
        return now()
    return localize(moment)


def stamp(moment):
    """Naive UTC value for audit columns (checked_in_at, released_at...)."""
    return moment.astimezone(pytz.utc).replace(tzinfo=None)
