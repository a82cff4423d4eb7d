import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from shared.rabbitmq import RabbitPublisher

from .ai_client import AIClient
from .cache import MatchCache
from .chat import ChatService
from .config import Settings, load_settings
from .dependencies import Services
from .matching import MatchingPipeline
from .middleware import RequestLoggingMiddleware
from .repository import build_repository
from .routes import booking, chat, psw
from .sample_data import seed

logger = logging.getLogger(__name__)

OPENAPI_TAGS = [
    {"name": "System", "description": "Health and maintenance endpoints."},
    {"name": "PSW", "description": "PSW profiles, availability matching and search."},
    {"name": "Chat", "description": "Conversational booking assistant."},
    {"name": "Booking", "description": "Booking confirmation and management."},
]


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )


def build_services(
    settings: Settings,
    repository=None,
    cache: MatchCache | None = None,
    publisher: RabbitPublisher | None = None,
    ai_client: AIClient | None = None,
) -> Services:
    repository = repository if repository is not None else build_repository(settings)
    pipeline = MatchingPipeline(default_limit=settings.match_result_limit)
    cache = cache or MatchCache.from_url(
        settings.redis_url,
        ttl_seconds=settings.match_cache_ttl,
        grid_deg=settings.match_grid_deg,
    )
    publisher = publisher or RabbitPublisher(settings.rabbit_url, service_name="psw-service")
    ai_client = ai_client or AIClient(
        settings.openai_api_key,
        model=settings.openai_model,
        base_url=settings.openai_base_url,
        max_conversations=settings.ai_max_conversations,
    )
    chat_service = ChatService(
        repository,
        pipeline,
        ai_client,
        default_radius_km=settings.default_radius_km,
        result_limit=settings.match_result_limit,
    )
    return Services(
        settings=settings,
        repository=repository,
        pipeline=pipeline,
        cache=cache,
        publisher=publisher,
        ai_client=ai_client,
        chat=chat_service,
    )


def create_app(settings: Settings | None = None, **overrides) -> FastAPI:
    settings = settings or load_settings()
    configure_logging(settings.log_level)

    services = build_services(settings, **overrides)

    app = FastAPI(title="PSW Booking Service", openapi_tags=OPENAPI_TAGS)
    app.state.services = services

    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.cors_origin],
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE"],
        allow_headers=["Content-Type", "Authorization"],
    )

    app.include_router(psw.router)
    app.include_router(chat.router)
    app.include_router(booking.router)

    @app.exception_handler(Exception)
    async def unhandled_error(request: Request, exc: Exception):
        logger.exception("unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(status_code=500, content={"detail": "Internal server error"})

    @app.get("/health", tags=["System"])
    async def health():
        return {
            "status": "ok",
            "service": "psw-service",
            "events_enabled": services.publisher.enabled,
            "cache_enabled": services.cache.enabled,
            "ai_enabled": services.ai_client.enabled,
        }

    @app.post("/api/seed", tags=["System"])
    async def seed_endpoint():
        added = await seed(services.repository)
        if not added:
            return {"message": "Store already has PSWs. Skipping seed.", "added": 0}
        return {"message": f"Seeded {added} PSW profiles.", "added": added}

    @app.on_event("startup")
    async def startup():
        await services.repository.startup()
        # never crash the service if RabbitMQ is temporarily unavailable
        try:
            await services.publisher.connect()
        except Exception as e:
            logger.warning("RabbitMQ connect failed at startup; continuing without events: %s", e)

    @app.on_event("shutdown")
    async def shutdown():
        try:
            await services.publisher.close()
        except Exception as e:
            logger.warning("RabbitMQ close failed: %s", e)
        try:
            await services.cache.close()
        except Exception as e:
            logger.warning("redis close failed: %s", e)
        try:
            await services.ai_client.close()
        except Exception as e:
            logger.warning("model client close failed: %s", e)
        await services.repository.close()

    return app
