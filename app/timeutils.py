import datetime as dt

UTC = dt.timezone.utc


def to_dt(v):
    """
    Normalise a Traccar/ISO timestamp (or datetime) to a tz-aware UTC datetime.
    Naive values are taken as UTC. Returns None for empty input.
    """
    if isinstance(v, dt.datetime):
        # ensure tz-aware
        return v.astimezone(UTC) if v.tzinfo else v.replace(tzinfo=UTC)

    if isinstance(v, str) and v.strip():
        dt_obj = dt.datetime.fromisoformat(v.strip().replace(" ", "T", 1))
        return dt_obj.astimezone(UTC) if dt_obj.tzinfo else dt_obj.replace(tzinfo=UTC)

    return None


def to_iso(v) -> str:
    """UTC ISO-8601 with a trailing Z, the format Traccar expects in query strings."""
    return to_dt(v).isoformat().replace("+00:00", "Z")


def to_iso8601(date_str: str) -> str:
    """
    Accept "2023-05-22 12:03", "2023-05-22T12:03:00" or a full ISO string and
    return "2023-05-22T12:03:00Z".
    """
    return to_iso(to_dt(date_str))


def now_utc():
    return dt.datetime.now(UTC)
