"""
Storage for PSW profiles, bookings and conversations.

Two interchangeable implementations share the same async methods:
``SqlRepository`` (SQLAlchemy async) and ``InMemoryRepository`` (used when no
database is configured, and in tests). Both hand out copies, never their own
state.
"""
import logging
import uuid
from datetime import datetime, timezone

from sqlalchemy import func, select

from shared.database import create_all, get_engine, get_session

from . import models
from .schemas import Booking, BookingData, ChatMessage, Conversation, PSWProfile

logger = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return str(uuid.uuid4())


# ================= IN MEMORY =================

class InMemoryRepository:
    def __init__(self):
        self._psws: dict[str, PSWProfile] = {}
        self._bookings: dict[str, Booking] = {}
        self._conversations: dict[str, Conversation] = {}

    async def startup(self):
        return

    async def close(self):
        return

    # -------- PSW --------

    async def list_psws(self) -> list[PSWProfile]:
        return [p.model_copy(deep=True) for p in self._psws.values()]

    async def count_psws(self) -> int:
        return len(self._psws)

    async def get_psw(self, psw_id: str) -> PSWProfile | None:
        psw = self._psws.get(psw_id)
        return psw.model_copy(deep=True) if psw else None

    async def create_psw(self, profile: PSWProfile) -> PSWProfile:
        now = _now()
        stored = profile.model_copy(
            update={"id": profile.id or _new_id(), "created_at": now, "updated_at": now},
            deep=True,
        )
        self._psws[stored.id] = stored
        return stored.model_copy(deep=True)

    # -------- BOOKING --------

    async def create_booking(self, booking: Booking) -> Booking:
        now = _now()
        stored = booking.model_copy(update={"id": _new_id(), "created_at": now, "updated_at": now})
        self._bookings[stored.id] = stored
        return stored.model_copy()

    async def get_booking(self, booking_id: str) -> Booking | None:
        booking = self._bookings.get(booking_id)
        return booking.model_copy() if booking else None

    async def update_booking(self, booking_id: str, updates: dict) -> Booking | None:
        booking = self._bookings.get(booking_id)
        if not booking:
            return None
        stored = booking.model_copy(update={**updates, "updated_at": _now()})
        self._bookings[booking_id] = stored
        return stored.model_copy()

    async def cancel_booking(self, booking_id: str) -> Booking | None:
        return await self.update_booking(booking_id, {"status": "cancelled"})

    async def list_client_bookings(self, client_id: str) -> list[Booking]:
        return [b.model_copy() for b in self._bookings.values() if b.client_id == client_id]

    async def list_psw_bookings(self, psw_id: str) -> list[Booking]:
        return [b.model_copy() for b in self._bookings.values() if b.psw_id == psw_id]

    # -------- CONVERSATION --------

    async def create_conversation(self, client_id: str, extracted_data: BookingData | None = None) -> Conversation:
        now = _now()
        conversation = Conversation(
            id=_new_id(),
            client_id=client_id,
            extracted_data=extracted_data or BookingData(),
            status="active",
            created_at=now,
            updated_at=now,
        )
        self._conversations[conversation.id] = conversation
        return conversation.model_copy(deep=True)

    async def get_conversation(self, conversation_id: str) -> Conversation | None:
        conversation = self._conversations.get(conversation_id)
        return conversation.model_copy(deep=True) if conversation else None

    async def update_conversation(self, conversation_id: str, **updates) -> Conversation | None:
        conversation = self._conversations.get(conversation_id)
        if not conversation:
            return None
        stored = conversation.model_copy(update={**updates, "updated_at": _now()}, deep=True)
        self._conversations[conversation_id] = stored
        return stored.model_copy(deep=True)

    async def add_chat_message(self, conversation_id: str, message: ChatMessage) -> ChatMessage | None:
        conversation = self._conversations.get(conversation_id)
        if not conversation:
            return None
        stored = message.model_copy(update={"id": message.id or _new_id()})
        conversation.messages.append(stored)
        conversation.updated_at = _now()
        return stored.model_copy()


# ================= SQL =================

def _psw_from_row(row: models.PSW) -> PSWProfile:
    return PSWProfile.model_validate(
        {
            "id": row.id,
            "name": row.name,
            "email": row.email,
            "phone": row.phone,
            "location": {
                "latitude": row.latitude,
                "longitude": row.longitude,
                "postal_code": row.postal_code,
                "address": row.address,
            },
            "certifications": row.certifications or [],
            "rating": row.rating,
            "review_count": row.review_count,
            "service_types": row.service_types or [],
            "availability": row.availability,
            "created_at": row.created_at,
            "updated_at": row.updated_at,
        }
    )


def _booking_from_row(row: models.Booking) -> Booking:
    return Booking(
        id=row.id,
        client_id=row.client_id,
        psw_id=row.psw_id,
        start_time=row.start_time,
        end_time=row.end_time,
        service_type=row.service_type,
        status=row.status,
        notes=row.notes,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _message_from_row(row: models.ChatMessage) -> ChatMessage:
    return ChatMessage(
        id=row.message_id,
        conversation_id=row.conversation_id,
        sender=row.sender,
        content=row.content,
        timestamp=row.timestamp,
        metadata=row.metadata_,
    )


class SqlRepository:
    def __init__(self, database_url: str, echo: bool = False):
        self.engine = get_engine(database_url, echo=echo)
        self.SessionLocal = get_session(self.engine)

    async def startup(self):
        await create_all(self.engine)

    async def close(self):
        await self.engine.dispose()

    # -------- PSW --------

    async def list_psws(self) -> list[PSWProfile]:
        async with self.SessionLocal() as db:
            result = await db.execute(select(models.PSW))
            return [_psw_from_row(r) for r in result.scalars().all()]

    async def count_psws(self) -> int:
        async with self.SessionLocal() as db:
            result = await db.execute(select(func.count()).select_from(models.PSW))
            return result.scalar_one()

    async def get_psw(self, psw_id: str) -> PSWProfile | None:
        async with self.SessionLocal() as db:
            row = await db.get(models.PSW, psw_id)
            return _psw_from_row(row) if row else None

    async def create_psw(self, profile: PSWProfile) -> PSWProfile:
        now = _now()
        row = models.PSW(
            id=profile.id or _new_id(),
            name=profile.name,
            email=profile.email,
            phone=profile.phone,
            latitude=profile.location.latitude,
            longitude=profile.location.longitude,
            postal_code=profile.location.postal_code,
            address=profile.location.address,
            certifications=list(profile.certifications),
            rating=profile.rating,
            review_count=profile.review_count,
            service_types=list(profile.service_types),
            availability=profile.availability.model_dump(mode="json"),
            created_at=now,
            updated_at=now,
        )
        async with self.SessionLocal() as db:
            db.add(row)
            await db.commit()
            return _psw_from_row(row)

    # -------- BOOKING --------

    async def create_booking(self, booking: Booking) -> Booking:
        now = _now()
        row = models.Booking(
            id=_new_id(),
            client_id=booking.client_id,
            psw_id=booking.psw_id,
            start_time=booking.start_time,
            end_time=booking.end_time,
            service_type=booking.service_type,
            status=booking.status,
            notes=booking.notes,
            created_at=now,
            updated_at=now,
        )
        async with self.SessionLocal() as db:
            db.add(row)
            await db.commit()
            return _booking_from_row(row)

    async def get_booking(self, booking_id: str) -> Booking | None:
        async with self.SessionLocal() as db:
            row = await db.get(models.Booking, booking_id)
            return _booking_from_row(row) if row else None

    async def update_booking(self, booking_id: str, updates: dict) -> Booking | None:
        async with self.SessionLocal() as db:
            row = await db.get(models.Booking, booking_id)
            if not row:
                return None
            for field, value in updates.items():
                setattr(row, field, value)
            row.updated_at = _now()
            await db.commit()
            return _booking_from_row(row)

    async def cancel_booking(self, booking_id: str) -> Booking | None:
        return await self.update_booking(booking_id, {"status": "cancelled"})

    async def list_client_bookings(self, client_id: str) -> list[Booking]:
        async with self.SessionLocal() as db:
            result = await db.execute(select(models.Booking).where(models.Booking.client_id == client_id))
            return [_booking_from_row(r) for r in result.scalars().all()]

    async def list_psw_bookings(self, psw_id: str) -> list[Booking]:
        async with self.SessionLocal() as db:
            result = await db.execute(select(models.Booking).where(models.Booking.psw_id == psw_id))
            return [_booking_from_row(r) for r in result.scalars().all()]

    # -------- CONVERSATION --------

    async def _load_conversation(self, db, conversation_id: str) -> Conversation | None:
        row = await db.get(models.Conversation, conversation_id)
        if not row:
            return None
        result = await db.execute(
            select(models.ChatMessage)
            .where(models.ChatMessage.conversation_id == conversation_id)
            .order_by(models.ChatMessage.timestamp, models.ChatMessage.id)
        )
        return Conversation(
            id=row.id,
            client_id=row.client_id,
            messages=[_message_from_row(m) for m in result.scalars().all()],
            extracted_data=BookingData.model_validate(row.extracted_data or {}),
            status=row.status,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )

    async def create_conversation(self, client_id: str, extracted_data: BookingData | None = None) -> Conversation:
        now = _now()
        row = models.Conversation(
            id=_new_id(),
            client_id=client_id,
            extracted_data=(extracted_data or BookingData()).model_dump(mode="json"),
            status="active",
            created_at=now,
            updated_at=now,
        )
        async with self.SessionLocal() as db:
            db.add(row)
            await db.commit()
            return await self._load_conversation(db, row.id)

    async def get_conversation(self, conversation_id: str) -> Conversation | None:
        async with self.SessionLocal() as db:
            return await self._load_conversation(db, conversation_id)

    async def update_conversation(self, conversation_id: str, **updates) -> Conversation | None:
        async with self.SessionLocal() as db:
            row = await db.get(models.Conversation, conversation_id)
            if not row:
                return None
            if "extracted_data" in updates:
                row.extracted_data = updates["extracted_data"].model_dump(mode="json")
            if "status" in updates:
                row.status = updates["status"]
            row.updated_at = _now()
            await db.commit()
            return await self._load_conversation(db, conversation_id)

    async def add_chat_message(self, conversation_id: str, message: ChatMessage) -> ChatMessage | None:
        async with self.SessionLocal() as db:
            conversation = await db.get(models.Conversation, conversation_id)
            if not conversation:
                return None
            row = models.ChatMessage(
                message_id=message.id or _new_id(),
                conversation_id=conversation_id,
                sender=message.sender,
                content=message.content,
                timestamp=message.timestamp,
                metadata_=message.metadata,
            )
            db.add(row)
            conversation.updated_at = _now()
            await db.commit()
            return _message_from_row(row)


def build_repository(settings):
    if settings.database_url:
        logger.info("using SQL repository")
        return SqlRepository(settings.database_url)
    logger.info("DATABASE_URL not set; using in-memory repository")
    return InMemoryRepository()
