from datetime import datetime, timedelta


def date_to_upper_bound(value: datetime) -> datetime:
    """
    Exclusive upper bound for a ``date_to`` filter.

    A bare date (midnight) includes the entire day, anything else is taken as an
    exact instant.
    """
    if value.hour == 0 and value.minute == 0 and value.second == 0 and value.microsecond == 0:
        return value + timedelta(days=1)
    return value + timedelta(microseconds=1)
