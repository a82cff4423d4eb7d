from dataclasses import dataclass

from fastapi import Request

from shared.rabbitmq import RabbitPublisher

from .ai_client import AIClient
from .cache import MatchCache
from .chat import ChatService
from .config import Settings
from .matching import MatchingPipeline


@dataclass
class Services:
    """Long-lived collaborators, built once per app and shared by every request."""

    settings: Settings
    repository: object
    pipeline: MatchingPipeline
    cache: MatchCache
    publisher: RabbitPublisher
    ai_client: AIClient
    chat: ChatService


def get_services(request: Request) -> Services:
    return request.app.state.services
