from datetime import date, datetime, timezone


def utcnow() -> datetime:
    """Return the current UTC time as a timezone-aware datetime."""
    return datetime.now(timezone.utc)


def ensure_utc(dt: datetime) -> datetime:
    """Make a naive datetime timezone-aware (UTC). Already-aware datetimes pass through.

    MongoDB stores datetimes without tzinfo (naive). When you read a date field
    from a Mongo document and need to do arithmetic or comparison with utcnow()
    (which is tz-aware), wrap it with ensure_utc() first, otherwise Python
    raises "can't subtract offset-naive and offset-aware datetimes".
    """
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


def current_nfl_week(now: datetime, season_start: date, max_weeks: int = 18) -> int:
    """Week number of the season for ``now``, clamped to 1..max_weeks.

    Week 1 starts on ``season_start`` (the season's opening Thursday). Dates
    before the season report week 1 so pre-season runs stay harmless.
    """
    days = (ensure_utc(now).date() - season_start).days
    if days < 0:
        return 1
    return max(1, min(max_weeks, days // 7 + 1))
