import json
import logging
import re
from collections import OrderedDict
from dataclasses import dataclass

import httpx
import openai
from openai import AsyncOpenAI
from pydantic import ValidationError

from .schemas import BookingData

logger = logging.getLogger(__name__)

HTTP_TIMEOUT = 20.0
MAX_HISTORY = 20
MAX_CONVERSATIONS = 1000

_JSON_BLOCK = re.compile(r"```json\s*\n([\s\S]*?)\n\s*```")

SYSTEM_PROMPT = """You are a helpful PSW (Personal Support Worker) booking assistant. Your role is to:
1. Understand client needs through natural language conversation
2. Extract booking information (location, date, time, service type, preferences)
3. Ask clarifying questions when information is incomplete or ambiguous
4. Maintain a friendly and professional tone

When the user provides booking details, extract and confirm:
- Location (city, postal code, address) with approximate latitude/longitude
- Desired date (YYYY-MM-DD)
- Desired time (start and end, 24-hour HH:MM)
- Service type if mentioned

Always respond conversationally and list back what you understood. After your
reply, add a fenced ```json block with the keys client_location {latitude,
longitude, address}, desired_date, desired_start_time, desired_end_time,
service_type, psw_preferences {max_distance, min_rating, certifications},
is_complete and confidence. Leave out keys you do not know."""


class AIUnavailable(Exception):
    pass


@dataclass
class AIResult:
    ai_message: str
    extracted_data: BookingData | None
    confidence: float
    requires_confirmation: bool = False


def extract_json(message: str) -> BookingData | None:
    match = _JSON_BLOCK.search(message)
    if not match:
        return None
    try:
        raw = json.loads(match.group(1))
    except json.JSONDecodeError as e:
        logger.warning("model returned unparsable JSON block: %s", e)
        return None
    if not isinstance(raw, dict):
        return None

    # older prompts used "location" for the client location
    if "location" in raw and "client_location" not in raw:
        raw["client_location"] = raw.pop("location")
    data = {k: v for k, v in raw.items() if v is not None and k in BookingData.model_fields}
    try:
        return BookingData.model_validate(data)
    except ValidationError as e:
        logger.warning("model JSON did not match booking data: %s", e)
        return None


def remove_json(message: str) -> str:
    return _JSON_BLOCK.sub("", message).strip()


class AIClient:
    """
    OpenAI chat-completions client keeping one history per conversation.

    Histories are kept for the ``max_conversations`` most recently active
    conversations; older ones are forgotten. Any failure raises AIUnavailable
    so the caller can fall back to the rule-based extractor.
    """

    def __init__(
        self,
        api_key: str | None,
        model: str = "gpt-4o-mini",
        base_url: str = "https://api.openai.com/v1",
        timeout: float = HTTP_TIMEOUT,
        max_conversations: int = MAX_CONVERSATIONS,
        http_client: httpx.AsyncClient | None = None,
    ):
        self.api_key = api_key
        self.model = model
        self.max_conversations = max_conversations
        self._history: OrderedDict[str, list[dict]] = OrderedDict()
        self._client = None
        if api_key:
            self._client = AsyncOpenAI(
                api_key=api_key,
                base_url=base_url,
                timeout=timeout,
                max_retries=0,
                http_client=http_client,
            )

    @property
    def enabled(self) -> bool:
        return self._client is not None

    def history(self, conversation_id: str) -> list[dict]:
        return list(self._history.get(conversation_id, []))

    def reset(self, conversation_id: str) -> None:
        self._history.pop(conversation_id, None)

    def _remember(self, conversation_id: str, role: str, content: str) -> None:
        history = self._history.setdefault(conversation_id, [])
        self._history.move_to_end(conversation_id)
        history.append({"role": role, "content": content})
        del history[:-MAX_HISTORY]
        while len(self._history) > self.max_conversations:
            self._history.popitem(last=False)

    async def _complete(self, messages: list[dict]) -> str:
        completion = await self._client.chat.completions.create(
            model=self.model,
            messages=messages,
            temperature=0.7,
            max_tokens=500,
        )
        try:
            return completion.choices[0].message.content or ""
        except (AttributeError, IndexError, TypeError):
            raise AIUnavailable("Unexpected completion payload")

    async def process_message(self, conversation_id: str, user_message: str) -> AIResult:
        if not self.enabled:
            raise AIUnavailable("OPENAI_API_KEY not set")

        self._remember(conversation_id, "user", user_message)
        messages = [{"role": "system", "content": SYSTEM_PROMPT}, *self.history(conversation_id)]

        logger.info("calling %s for conversation %s", self.model, conversation_id)
        try:
            reply = await self._complete(messages)
        except openai.APIError as e:
            logger.error("completion request failed: %s", e)
            raise AIUnavailable(str(e)) from e

        self._remember(conversation_id, "assistant", reply)

        extracted = extract_json(reply)
        return AIResult(
            ai_message=remove_json(reply),
            extracted_data=extracted,
            confidence=extracted.confidence if extracted and extracted.confidence else 0.5,
        )

    async def close(self):
        if self._client is not None:
            await self._client.close()
