from datetime import date, datetime

from ..schemas import WEEKDAYS, SlotCalendar, TimeSlot, WeeklyCalendar


def parse_hhmm(value: str) -> int:
    """
    "HH:MM" -> minutes since midnight.
    Raises ValueError on anything else, callers are expected to validate first.
    """
    try:
        hours, minutes = value.strip().split(":")
        h, m = int(hours), int(minutes)
    except (AttributeError, ValueError):
        raise ValueError(f"Invalid time {value!r}, expected HH:MM")
    if not (0 <= h <= 23 and 0 <= m <= 59):
        raise ValueError(f"Invalid time {value!r}, expected HH:MM")
    return h * 60 + m


def _as_date(value) -> date:
    if isinstance(value, datetime):
        return value.date()
    return value


def _slot_contains(slot: TimeSlot, day: date, req_start: int, req_end: int) -> bool:
    if slot.date != day:
        return False
    return parse_hhmm(slot.start_time) <= req_start and req_end <= parse_hhmm(slot.end_time)


def slots_available(slots, requested_date, requested_start: str, requested_end: str) -> bool:
    day = _as_date(requested_date)
    req_start = parse_hhmm(requested_start)
    req_end = parse_hhmm(requested_end)

    # inverted window can never sit inside a slot
    if req_end < req_start:
        return False

    return any(_slot_contains(slot, day, req_start, req_end) for slot in slots)


def weekly_available(calendar: WeeklyCalendar, requested_date) -> bool:
    day = _as_date(requested_date)

    overrides = calendar.overrides.get(day)
    if overrides is not None:
        # override bounds are not compared with the requested window
        return any(slot.status == "available" for slot in overrides)

    return WEEKDAYS[day.weekday()] in calendar.weekly


def is_available(calendar, requested_date, requested_start: str, requested_end: str) -> bool:
    """
    Does the worker's calendar cover the requested window?

    Flat slot lists need one slot on the requested date that fully contains
    the window. Weekly calendars answer from the date override when present,
    else from whether the weekday is in the template.
    """
    if isinstance(calendar, WeeklyCalendar):
        # the template check is presence-only, but the window must still parse
        if parse_hhmm(requested_end) < parse_hhmm(requested_start):
            return False
        return weekly_available(calendar, requested_date)

    if isinstance(calendar, SlotCalendar):
        return slots_available(calendar.slots, requested_date, requested_start, requested_end)

    return slots_available(calendar or [], requested_date, requested_start, requested_end)
