from datetime import date, datetime, time

from services.errors import ValidationError


def parse_date(value, field="date") -> date:
    # Expect ISO format like "2025-03-10"
    try:
        return date.fromisoformat(str(value).strip())
    except (TypeError, ValueError):
        raise ValidationError("Invalid date. Use YYYY-MM-DD", fields={field: "invalid"}) from None


def parse_time(value, field) -> time:
    # "09:00" or "09:00:00"
    text = str(value).strip()
    for fmt in ("%H:%M:%S", "%H:%M"):
        try:
            return datetime.strptime(text, fmt).time()
        except ValueError:
            continue
    raise ValidationError("Invalid time. Use HH:MM or HH:MM:SS", fields={field: "invalid"})


def parse_int(value, field) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be an integer", fields={field: "invalid"}) from None


def require_fields(data: dict, *names):
    missing = [n for n in names if data.get(n) in (None, "")]
    if missing:
        raise ValidationError(
            "Missing required fields: " + ", ".join(missing),
            fields={n: "required" for n in missing},
        )


def parse_slot(data: dict):
    """room_id, date, start_time, end_time from a JSON body."""
    require_fields(data, "room_id", "date", "start_time", "end_time")
    return (
        parse_int(data["room_id"], "room_id"),
        parse_date(data["date"]),
        parse_time(data["start_time"], "start_time"),
        parse_time(data["end_time"], "end_time"),
    )
