"""
Rule-based booking data extraction.

Used whenever the language model is unavailable or its reply carries no
structured data. Each helper looks for one kind of fact in a free-text client
message; ``extract_booking_data`` combines them and grades completeness.
"""
import re
from datetime import date, datetime, timedelta

from dateutil import parser as date_parser

from .schemas import WEEKDAYS, BookingData, Location

_MONTHS = (
    "january|february|march|april|may|june|july|august|"
    "september|october|november|december|"
    "jan|feb|mar|apr|jun|jul|aug|sep|sept|oct|nov|dec"
)

_MONTH_DAY = re.compile(
    rf"\b(?:{_MONTHS})\.?\s+\d{{1,2}}(?:st|nd|rd|th)?(?:,?\s+\d{{4}})?\b", re.I
)
_NUMERIC_DATE = re.compile(r"\b(\d{1,2})[/\-](\d{1,2})[/\-](\d{2,4})\b")
_ISO_DATE = re.compile(r"\b(\d{4})-(\d{2})-(\d{2})\b")
_RELATIVE_DATE = re.compile(
    r"\b(today|tomorrow|next\s+(?:monday|tuesday|wednesday|thursday|friday|saturday|sunday))\b",
    re.I,
)
_ORDINAL = re.compile(r"(\d)(st|nd|rd|th)\b", re.I)

_TIME_WORDS = {"noon": (12, 0, "pm"), "midnight": (12, 0, "am")}


def _time_token(tag: str) -> str:
    return (
        rf"(?:(?P<{tag}h>\d{{1,2}})(?::(?P<{tag}m>\d{{2}}))?\s*(?P<{tag}ap>am|pm)?"
        rf"|(?P<{tag}w>noon|midnight))"
    )


_TIME_RANGE = re.compile(
    rf"\b{_time_token('s')}\s*(?:-|–|to|until)\s*{_time_token('e')}(?![\w/-])",
    re.I,
)
_SINGLE_TIME = re.compile(r"\bat\s+(?:(\d{1,2})(?::(\d{2}))?\s*(am|pm)|(noon|midnight))\b", re.I)

CITY_COORDINATES = {
    "toronto": (43.6532, -79.3832),
    "vancouver": (49.2827, -123.1207),
    "calgary": (51.0447, -114.0719),
    "montreal": (45.5019, -73.5674),
    "ottawa": (45.4215, -75.6972),
    "winnipeg": (49.8951, -97.1384),
    "edmonton": (53.5461, -113.4938),
    "quebec": (46.8139, -71.2080),
}

# most specific first, the first hit wins
SERVICE_KEYWORDS = [
    ("Medication Management", ["medication", "medicine", "pills"]),
    ("Personal Hygiene", ["hygiene", "bath", "shower", "grooming"]),
    ("Mobility Assistance", ["mobility", "wheelchair", "transfer"]),
    ("Dementia Support", ["dementia", "alzheimer"]),
    ("Companion Care", ["compan", "friend", "social", "visit"]),
    ("Household Tasks", ["clean", "house", "cook", "meal"]),
    ("General Support", ["general support", "caregiv", "care", "elderly", "senior", "assist"]),
]


def to_24h(hour: int, minute: int, ampm: str | None) -> str | None:
    if ampm:
        if not 1 <= hour <= 12:
            return None
        hour = hour % 12 + (12 if ampm.lower() == "pm" else 0)
    if not (0 <= hour <= 23 and 0 <= minute <= 59):
        return None
    return f"{hour:02d}:{minute:02d}"


def extract_date(message: str, today: date) -> date | None:
    m = _ISO_DATE.search(message)
    if m:
        try:
            return date(int(m.group(1)), int(m.group(2)), int(m.group(3)))
        except ValueError:
            pass

    m = _MONTH_DAY.search(message)
    if m:
        text = _ORDINAL.sub(r"\1", m.group(0)).replace(",", " ")
        try:
            default = datetime(today.year, today.month, today.day)
            return date_parser.parse(text, default=default).date()
        except (ValueError, OverflowError):
            pass

    m = _NUMERIC_DATE.search(message)
    if m:
        try:
            return date_parser.parse(m.group(0), dayfirst=False).date()
        except (ValueError, OverflowError):
            pass

    m = _RELATIVE_DATE.search(message)
    if m:
        word = m.group(1).lower()
        if word == "today":
            return today
        if word == "tomorrow":
            return today + timedelta(days=1)
        target = WEEKDAYS.index(word.split()[-1])
        ahead = (target - today.weekday()) % 7 or 7
        return today + timedelta(days=ahead)

    return None


def _token(m, tag: str):
    word = m.group(f"{tag}w")
    if word:
        return _TIME_WORDS[word.lower()] + (True,)
    minute = m.group(f"{tag}m")
    return int(m.group(f"{tag}h")), int(minute or 0), m.group(f"{tag}ap"), minute is not None


def extract_times(message: str) -> tuple[str | None, str | None]:
    for m in _TIME_RANGE.finditer(message):
        start_h, start_m, start_ap, start_exact = _token(m, "s")
        end_h, end_m, end_ap, end_exact = _token(m, "e")
        # a bare "9-12" is too ambiguous (could be a date or a count)
        if not (start_ap or end_ap or (start_exact and end_exact)):
            continue

        if not start_ap and end_ap:
            start_ap = end_ap
            # "11 to 2pm" and "9 to noon" start in the morning
            if end_ap.lower() == "pm" and start_h % 12 > end_h % 12:
                start_ap = "am"
            # "8 to midnight" starts in the evening
            elif (m.group("ew") or "").lower() == "midnight":
                start_ap = "pm"

        start = to_24h(start_h, start_m, start_ap)
        end = to_24h(end_h, end_m, end_ap or start_ap)
        if start and end:
            return start, end

    m = _SINGLE_TIME.search(message)
    if m:
        if m.group(4):
            return to_24h(*_TIME_WORDS[m.group(4).lower()]), None
        return to_24h(int(m.group(1)), int(m.group(2) or 0), m.group(3)), None

    return None, None


def extract_location(message: str) -> Location | None:
    lower = message.lower()
    for city, (lat, lon) in CITY_COORDINATES.items():
        if re.search(rf"\b{city}\b", lower):
            return Location(latitude=lat, longitude=lon, address=city.title())
    return None


def extract_service_type(message: str) -> str | None:
    lower = message.lower()
    for service_type, _ in SERVICE_KEYWORDS:
        if service_type.lower() in lower:
            return service_type
    for service_type, keywords in SERVICE_KEYWORDS:
        if any(kw in lower for kw in keywords):
            return service_type
    return None


def extract_booking_data(message: str, today: date | None = None) -> BookingData:
    today = today or date.today()
    found = {}

    desired_date = extract_date(message, today)
    if desired_date:
        found["desired_date"] = desired_date

    start, end = extract_times(message)
    if start:
        found["desired_start_time"] = start
    if end:
        found["desired_end_time"] = end

    location = extract_location(message)
    if location:
        found["client_location"] = location

    service_type = extract_service_type(message)
    if service_type:
        found["service_type"] = service_type

    has = sum(1 for k in ("client_location", "desired_date", "desired_start_time") if k in found)
    if has == 3:
        found["is_complete"] = True
        found["confidence"] = 0.9
    elif has == 2:
        found["confidence"] = 0.6
    elif has == 1:
        found["confidence"] = 0.4
    else:
        found["confidence"] = 0.1

    return BookingData(**found)


def fallback_reply(message: str, data: BookingData) -> str:
    location = data.client_location.address if data.client_location else None
    has_time = bool(data.desired_start_time)

    if location and data.desired_date and has_time:
        return (
            "Great! I found the following details:\n"
            f"- Location: {location}\n"
            f"- Date: {data.desired_date.isoformat()}\n"
            f"- Time: {data.desired_start_time} - {data.desired_end_time or 'TBD'}\n\n"
            "Let me search for available PSWs in your area with these requirements."
        )

    found = []
    if location:
        found.append(f"Location: {location}")
    if data.desired_date:
        found.append(f"Date: {data.desired_date.isoformat()}")
    if has_time:
        found.append(f"Time: {data.desired_start_time}")

    missing = []
    if not location:
        missing.append("location (e.g., city or postal code)")
    if not data.desired_date:
        missing.append("preferred date")
    if not has_time:
        missing.append("preferred time")

    return (
        f"Thank you for providing: {message}\n\n"
        f"I found: {', '.join(found) or 'some information'}\n\n"
        f"To help you better, could you please provide: {', '.join(missing)}?"
    )
