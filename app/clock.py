from datetime import date, datetime, timezone

import pytz

from app.config import settings


local_tz = pytz.timezone(settings.APP_TIMEZONE)


def utcnow() -> datetime:
    # Naive UTC, matching what the DateTime columns store
    return datetime.now(timezone.utc).replace(tzinfo=None)


def today() -> date:
    """Calendar date in the configured application time zone."""
    return datetime.now(local_tz).date()
