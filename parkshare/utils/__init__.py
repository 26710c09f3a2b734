from parkshare.utils.clock import as_utc, duration_ms, parse_timestamp, utcnow

__all__ = [
    "as_utc",
    "duration_ms",
    "parse_timestamp",
    "utcnow",
]
