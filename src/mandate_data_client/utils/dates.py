from datetime import datetime, timezone


def as_utc(value: datetime) -> datetime:
    """
    Приводит момент времени к UTC.
    naive datetime считается уже записанным в UTC (так их возвращает sqlite).
    """
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
