import asyncio
from datetime import date

import pytest

from psw_service.ai_client import AIClient, AIResult, AIUnavailable
from psw_service.chat import WELCOME_MESSAGE, ChatService, ConversationNotFound, build_match_request
from psw_service.matching import MatchingPipeline
from psw_service.repository import InMemoryRepository
from psw_service.sample_data import seed
from psw_service.schemas import BookingData, Location, PSWPreferences

TODAY = date(2024, 1, 10)


class ScriptedAI:
    """Returns canned results in order; an exception in the script is raised."""

    def __init__(self, *results):
        self.results = list(results)
        self.calls = []
        self.forgotten = []

    async def process_message(self, conversation_id, message):
        self.calls.append((conversation_id, message))
        result = self.results.pop(0)
        if isinstance(result, Exception):
            raise result
        return result

    def reset(self, conversation_id):
        self.forgotten.append(conversation_id)


def make_service(ai_client=None):
    repository = InMemoryRepository()
    asyncio.run(seed(repository))
    return ChatService(repository, MatchingPipeline(), ai_client or AIClient(None))


def names(workers):
    return [w.name for w in workers]


def test_build_match_request_needs_window():
    data = BookingData(client_location=Location(latitude=1, longitude=2), desired_date=TODAY)
    assert build_match_request(data, 15) is None


def test_build_match_request_uses_max_distance():
    data = BookingData(
        client_location=Location(latitude=1, longitude=2),
        desired_date=TODAY,
        desired_start_time="09:00",
        desired_end_time="12:00",
        psw_preferences=PSWPreferences(max_distance=3),
    )
    assert build_match_request(data, 15).radius_km == 3
    data.psw_preferences = None
    assert build_match_request(data, 15).radius_km == 15


def test_build_match_request_rejects_bad_times():
    data = BookingData(
        client_location=Location(latitude=1, longitude=2),
        desired_date=TODAY,
        desired_start_time="morning",
        desired_end_time="noon",
    )
    assert build_match_request(data, 15) is None


def test_create_conversation_greets():
    service = make_service()

    async def run():
        conversation = await service.create_conversation("client-1")
        return await service.repository.get_conversation(conversation.id)

    conversation = asyncio.run(run())
    assert conversation.status == "active"
    assert [(m.sender, m.content) for m in conversation.messages] == [("ai", WELCOME_MESSAGE)]


def test_rule_based_turn_suggests_workers():
    service = make_service()

    async def run():
        conversation = await service.create_conversation("client-1")
        response = await service.send_message(
            conversation.id,
            "I need General Support in Toronto on January 15 from 9am to 12pm",
            today=TODAY,
        )
        return response, await service.repository.get_conversation(conversation.id)

    response, conversation = asyncio.run(run())
    assert names(response.suggested_psws) == [
        "Sarah Johnson",
        "Angela Murphy",
        "Michael Chen",
        "James Wilson",
    ]
    assert response.extracted_data.is_complete
    assert not response.requires_confirmation
    assert "Let me search" in response.ai_message

    assert [m.sender for m in conversation.messages] == ["ai", "client", "ai"]
    assert conversation.messages[2].metadata["desired_date"] == "2024-01-15"
    assert conversation.extracted_data.service_type == "General Support"
    assert conversation.status == "active"


def test_details_accumulate_across_turns():
    service = make_service()

    async def run():
        conversation = await service.create_conversation("client-1")
        first = await service.send_message(conversation.id, "I'm in Toronto", today=TODAY)
        second = await service.send_message(conversation.id, "January 15 from 9am to 12pm", today=TODAY)
        return first, second

    first, second = asyncio.run(run())
    assert first.suggested_psws == []
    assert not first.extracted_data.is_complete

    assert second.extracted_data.client_location.address == "Toronto"
    assert second.extracted_data.is_complete
    assert len(second.suggested_psws) == 5


def test_model_reply_is_used():
    ai = ScriptedAI(
        AIResult(
            ai_message="Which city are you in?",
            extracted_data=BookingData(service_type="Companion Care"),
            confidence=0.3,
        )
    )
    service = make_service(ai)

    async def run():
        conversation = await service.create_conversation("client-1")
        return await service.send_message(conversation.id, "my dad needs company", today=TODAY)

    response = asyncio.run(run())
    assert response.ai_message == "Which city are you in?"
    assert response.extracted_data.service_type == "Companion Care"
    assert response.suggested_psws == []
    assert len(ai.calls) == 1
    assert ai.forgotten == []


def test_model_without_data_falls_back_to_rules():
    ai = ScriptedAI(AIResult(ai_message="Got it!", extracted_data=None, confidence=0.5))
    service = make_service(ai)

    async def run():
        conversation = await service.create_conversation("client-1")
        return await service.send_message(conversation.id, "Toronto tomorrow", today=TODAY)

    response = asyncio.run(run())
    assert response.ai_message == "Got it!"
    assert response.extracted_data.desired_date == date(2024, 1, 11)


def test_model_outage_falls_back_to_rules():
    service = make_service(ScriptedAI(AIUnavailable("timeout")))

    async def run():
        conversation = await service.create_conversation("client-1")
        return await service.send_message(conversation.id, "Toronto please", today=TODAY)

    response = asyncio.run(run())
    assert "could you please provide" in response.ai_message
    assert response.extracted_data.client_location.address == "Toronto"


def test_confirmation_closes_complete_conversation():
    ai = ScriptedAI(
        AIResult(
            ai_message="Shall I book it?",
            extracted_data=BookingData(
                client_location=Location(latitude=43.6532, longitude=-79.3832),
                desired_date=date(2024, 1, 15),
                desired_start_time="09:00",
                desired_end_time="12:00",
            ),
            confidence=0.9,
            requires_confirmation=True,
        )
    )
    service = make_service(ai)

    async def run():
        conversation = await service.create_conversation("client-1")
        response = await service.send_message(conversation.id, "yes, book it", today=TODAY)
        return response, await service.repository.get_conversation(conversation.id)

    response, conversation = asyncio.run(run())
    assert response.requires_confirmation
    assert conversation.status == "completed"
    assert ai.forgotten == [conversation.id]


def test_unknown_conversation():
    service = make_service()
    with pytest.raises(ConversationNotFound):
        asyncio.run(service.send_message("missing", "hello", today=TODAY))
