import re
from datetime import date, datetime
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import AliasChoices, BaseModel, Field, field_validator, model_validator

Date = date

_HHMM = re.compile(r"^([01]?\d|2[0-3]):[0-5]\d$")

WEEKDAYS = (
    "monday",
    "tuesday",
    "wednesday",
    "thursday",
    "friday",
    "saturday",
    "sunday",
)


def check_hhmm(value: str) -> str:
    value = (value or "").strip()
    if not _HHMM.match(value):
        raise ValueError(f"Invalid time {value!r}, expected HH:MM (24-hour)")
    return value


def _alias(name: str, camel: str, **kwargs):
    # accept the camelCase spelling of stored documents, emit snake_case
    return Field(validation_alias=AliasChoices(name, camel), **kwargs)


# ---- Location ----

class Location(BaseModel):
    latitude: float
    longitude: float
    postal_code: Optional[str] = _alias("postal_code", "postalCode", default=None)
    address: Optional[str] = None


# ---- Availability calendars ----

class TimeSlot(BaseModel):
    date: date
    start_time: str = _alias("start_time", "startTime")
    end_time: str = _alias("end_time", "endTime")

    @field_validator("date", mode="before")
    @classmethod
    def _date_only(cls, v):
        if isinstance(v, datetime):
            return v.date()
        if isinstance(v, str) and "T" in v:
            return v.split("T", 1)[0]
        return v

    @field_validator("start_time", "end_time")
    @classmethod
    def _check_times(cls, v):
        return check_hhmm(v)


class WeeklySlot(BaseModel):
    start_time: str = _alias("start_time", "startTime")
    end_time: str = _alias("end_time", "endTime")

    @field_validator("start_time", "end_time")
    @classmethod
    def _check_times(cls, v):
        return check_hhmm(v)


class OverrideSlot(BaseModel):
    start_time: str = _alias("start_time", "startTime")
    end_time: str = _alias("end_time", "endTime")
    status: Literal["available", "booked", "unavailable"] = "available"

    @field_validator("start_time", "end_time")
    @classmethod
    def _check_times(cls, v):
        return check_hhmm(v)


class SlotCalendar(BaseModel):
    kind: Literal["slots"] = "slots"
    slots: List[TimeSlot] = Field(default_factory=list)


class WeeklyCalendar(BaseModel):
    kind: Literal["weekly"] = "weekly"
    weekly: Dict[str, List[WeeklySlot]] = Field(default_factory=dict)
    overrides: Dict[date, List[OverrideSlot]] = Field(default_factory=dict)

    @field_validator("weekly", mode="before")
    @classmethod
    def _normalize_weekdays(cls, v):
        if not isinstance(v, dict):
            return v
        normalized = {}
        for day, slots in v.items():
            key = str(day).strip().lower()
            if key not in WEEKDAYS:
                raise ValueError(f"Unknown weekday: {day}")
            normalized[key] = slots
        return normalized


Calendar = Annotated[Union[SlotCalendar, WeeklyCalendar], Field(discriminator="kind")]


# ---- PSW profile ----

class PSWProfile(BaseModel):
    id: Optional[str] = None
    name: str
    email: str
    phone: Optional[str] = None
    location: Location
    certifications: List[str] = Field(default_factory=list)
    rating: float = _alias("rating", "ratings", default=0.0)
    review_count: int = _alias("review_count", "reviewCount", default=0)
    service_types: List[str] = _alias("service_types", "serviceTypes", default_factory=list)
    availability: Calendar = Field(default_factory=SlotCalendar)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @model_validator(mode="before")
    @classmethod
    def _wrap_flat_slots(cls, data: Any):
        """
        Documents written before the weekly calendar existed carry a flat
        ``availableTimeSlots`` list; read those as a slot calendar.
        """
        if not isinstance(data, dict):
            return data
        data = dict(data)
        flat = data.pop("availableTimeSlots", None)
        if flat is None:
            flat = data.pop("available_time_slots", None)
        if flat is not None and "availability" not in data:
            data["availability"] = {"kind": "slots", "slots": flat}
        elif isinstance(data.get("availability"), list):
            data["availability"] = {"kind": "slots", "slots": data["availability"]}
        return data


class CreatePSW(BaseModel):
    name: str
    email: str
    phone: Optional[str] = None
    location: Location
    certifications: List[str] = Field(default_factory=list)
    rating: float = 0.0
    review_count: int = 0
    service_types: List[str] = Field(default_factory=list)
    availability: Calendar = Field(default_factory=SlotCalendar)


# ---- Matching ----

class PSWPreferences(BaseModel):
    max_distance: Optional[float] = _alias("max_distance", "maxDistance", default=None)
    min_rating: Optional[float] = _alias("min_rating", "minRating", default=None)
    certifications: Optional[List[str]] = None


class MatchRequest(BaseModel):
    location: Location
    radius_km: float = _alias("radius_km", "radius")
    date: Date = _alias("date", "desiredDate")
    start_time: str = _alias("start_time", "startTime")
    end_time: str = _alias("end_time", "endTime")
    service_type: Optional[str] = _alias("service_type", "serviceType", default=None)
    preferences: Optional[PSWPreferences] = None

    @field_validator("start_time", "end_time")
    @classmethod
    def _check_times(cls, v):
        return check_hhmm(v)

    @field_validator("date", mode="before")
    @classmethod
    def _date_only(cls, v):
        if isinstance(v, datetime):
            return v.date()
        if isinstance(v, str) and "T" in v:
            return v.split("T", 1)[0]
        return v


class AvailablePSWsResponse(BaseModel):
    psw_profiles: List[PSWProfile]
    total_count: int


class SearchPSWsResponse(BaseModel):
    results: List[PSWProfile]
    total_count: int


# ---- Conversation ----

class BookingData(BaseModel):
    client_location: Optional[Location] = None
    desired_date: Optional[date] = None
    desired_start_time: Optional[str] = None
    desired_end_time: Optional[str] = None
    service_type: Optional[str] = None
    psw_preferences: Optional[PSWPreferences] = None
    is_complete: bool = False
    confidence: float = 0.0

    def has_match_fields(self) -> bool:
        return bool(
            self.client_location
            and self.desired_date
            and self.desired_start_time
            and self.desired_end_time
        )

    def merged(self, update: "BookingData") -> "BookingData":
        """Later turns win, but only for the fields they actually set."""
        data = self.model_dump()
        data.update(update.model_dump(exclude_unset=True))
        merged = BookingData.model_validate(data)
        # completeness is judged on the whole conversation, not the last turn
        merged.is_complete = bool(
            merged.client_location and merged.desired_date and merged.desired_start_time
        )
        return merged


class ChatMessage(BaseModel):
    id: Optional[str] = None
    conversation_id: str
    sender: Literal["client", "ai"]
    content: str
    timestamp: datetime
    metadata: Optional[Dict[str, Any]] = None


class Conversation(BaseModel):
    id: Optional[str] = None
    client_id: str
    messages: List[ChatMessage] = Field(default_factory=list)
    extracted_data: BookingData = Field(default_factory=BookingData)
    status: Literal["active", "completed", "archived"] = "active"
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class CreateConversation(BaseModel):
    client_id: Optional[str] = _alias("client_id", "clientId", default=None)


class ChatRequest(BaseModel):
    conversation_id: Optional[str] = _alias("conversation_id", "conversationId", default=None)
    client_id: Optional[str] = _alias("client_id", "clientId", default=None)
    message: Optional[str] = None


class ChatResponse(BaseModel):
    conversation_id: str
    ai_message: str
    extracted_data: Optional[BookingData] = None
    suggested_psws: List[PSWProfile] = Field(default_factory=list)
    requires_confirmation: bool = False


# ---- Booking ----

BookingStatus = Literal["pending", "confirmed", "completed", "cancelled"]


class Booking(BaseModel):
    id: Optional[str] = None
    client_id: str
    psw_id: str
    start_time: datetime
    end_time: datetime
    service_type: str
    status: BookingStatus = "pending"
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class BookingConfirmationRequest(BaseModel):
    client_id: Optional[str] = _alias("client_id", "clientId", default=None)
    psw_id: Optional[str] = _alias("psw_id", "pswId", default=None)
    start_time: Optional[datetime] = _alias("start_time", "startTime", default=None)
    end_time: Optional[datetime] = _alias("end_time", "endTime", default=None)
    service_type: Optional[str] = _alias("service_type", "serviceType", default=None)
    conversation_id: Optional[str] = _alias("conversation_id", "conversationId", default=None)


class BookingConfirmationResponse(BaseModel):
    booking: Booking
    confirmation_message: str


class UpdateBooking(BaseModel):
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    service_type: Optional[str] = None
    status: Optional[BookingStatus] = None
    notes: Optional[str] = None


class BookingListResponse(BaseModel):
    bookings: List[Booking]
    total_count: int
