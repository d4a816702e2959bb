def overlaps(existing_start, existing_end, new_start, new_end) -> bool:
    """Return True when ``[existing_start, existing_end)`` and
    ``[new_start, new_end)`` share any instant.

    Intervals are half-open, so one ending exactly when the other begins does
    not overlap. Works for any mutually comparable values (``time``,
    ``datetime``, minutes as ints).
    """
    return existing_start < new_end and existing_end > new_start
