from datetime import datetime, timedelta, timezone

def utc_now() -> datetime:
    return datetime.now(timezone.utc)

def as_utc(dt: datetime) -> datetime:
    # naive datetimes are taken to be UTC already
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)

def parse_date(s: str | None) -> datetime:
    if not s:
        return utc_now()
    return as_utc(datetime.fromisoformat(s.replace("Z", "+00:00")))

def day_of_year(dt: datetime) -> int:
    return as_utc(dt).timetuple().tm_yday

def iso_z(dt: datetime) -> str:
    return as_utc(dt).isoformat().replace("+00:00", "Z")

def time_range(center: datetime, days_back: int = 30, days_fwd: int = 0):
    return center - timedelta(days=days_back), center + timedelta(days=days_fwd)
