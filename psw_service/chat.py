import logging
from datetime import date, datetime, timezone

from pydantic import ValidationError

from .ai_client import AIUnavailable
from .extraction import extract_booking_data, fallback_reply
from .schemas import BookingData, ChatMessage, ChatResponse, MatchRequest

logger = logging.getLogger(__name__)

WELCOME_MESSAGE = """Hello! I'm your PSW booking assistant. I'm here to help you find and book a Personal Support Worker.

Tell me a bit about what you need:
- Where are you located (postal code or area)?
- When would you like to book? (specific date or general timeframe)
- What time of day works best for you?
- Any specific services or certifications you're looking for?

Feel free to describe your needs in your own words!"""


class ConversationNotFound(Exception):
    pass


def _now() -> datetime:
    return datetime.now(timezone.utc)


def build_match_request(data: BookingData, default_radius_km: float) -> MatchRequest | None:
    """Turn gathered booking data into a match request once it has enough to search."""
    if not data.has_match_fields():
        return None
    prefs = data.psw_preferences
    radius = prefs.max_distance if prefs and prefs.max_distance else default_radius_km
    try:
        return MatchRequest(
            location=data.client_location,
            radius_km=radius,
            date=data.desired_date,
            start_time=data.desired_start_time,
            end_time=data.desired_end_time,
            service_type=data.service_type,
            preferences=prefs,
        )
    except ValidationError as e:
        logger.warning("gathered booking data is not searchable yet: %s", e)
        return None


class ChatService:
    def __init__(self, repository, pipeline, ai_client, default_radius_km: float = 15.0, result_limit: int = 5):
        self.repository = repository
        self.pipeline = pipeline
        self.ai_client = ai_client
        self.default_radius_km = default_radius_km
        self.result_limit = result_limit

    async def create_conversation(self, client_id: str):
        conversation = await self.repository.create_conversation(client_id)
        await self.repository.add_chat_message(
            conversation.id,
            ChatMessage(
                conversation_id=conversation.id,
                sender="ai",
                content=WELCOME_MESSAGE,
                timestamp=_now(),
            ),
        )
        return conversation

    async def _understand(self, conversation_id: str, message: str, today: date):
        """Model first, rules when the model is down or returns no structured data."""
        try:
            result = await self.ai_client.process_message(conversation_id, message)
        except AIUnavailable as e:
            logger.info("falling back to rule-based extraction: %s", e)
            data = extract_booking_data(message, today=today)
            return fallback_reply(message, data), data, False

        data = result.extracted_data or extract_booking_data(message, today=today)
        return result.ai_message, data, result.requires_confirmation

    async def send_message(self, conversation_id: str, message: str, today: date | None = None) -> ChatResponse:
        conversation = await self.repository.get_conversation(conversation_id)
        if not conversation:
            raise ConversationNotFound(conversation_id)

        ai_message, extracted, requires_confirmation = await self._understand(
            conversation_id, message, today or date.today()
        )

        await self.repository.add_chat_message(
            conversation_id,
            ChatMessage(conversation_id=conversation_id, sender="client", content=message, timestamp=_now()),
        )
        await self.repository.add_chat_message(
            conversation_id,
            ChatMessage(
                conversation_id=conversation_id,
                sender="ai",
                content=ai_message,
                timestamp=_now(),
                metadata=extracted.model_dump(mode="json", exclude_unset=True),
            ),
        )

        merged = conversation.extracted_data.merged(extracted)
        status = "completed" if requires_confirmation and merged.is_complete else "active"
        await self.repository.update_conversation(conversation_id, extracted_data=merged, status=status)
        if status == "completed":
            self.ai_client.reset(conversation_id)

        suggested = []
        request = build_match_request(merged, self.default_radius_km)
        if request is not None:
            workers = await self.repository.list_psws()
            suggested = self.pipeline.match(workers, request, limit=self.result_limit)
            logger.info("conversation %s: %d suggested PSWs", conversation_id, len(suggested))

        return ChatResponse(
            conversation_id=conversation_id,
            ai_message=ai_message,
            extracted_data=merged,
            suggested_psws=suggested,
            requires_confirmation=requires_confirmation,
        )
