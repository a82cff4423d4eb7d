import os
from dataclasses import dataclass


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    return float(raw) if raw else default


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    return int(raw) if raw else default


@dataclass(frozen=True)
class Settings:
    database_url: str | None = None
    redis_url: str | None = None
    rabbit_url: str | None = None

    openai_api_key: str | None = None
    openai_model: str = "gpt-4o-mini"
    openai_base_url: str = "https://api.openai.com/v1"
    ai_max_conversations: int = 1000

    default_radius_km: float = 15.0
    match_result_limit: int = 5
    match_cache_ttl: int = 60
    match_grid_deg: float = 0.05

    cors_origin: str = "http://localhost:3000"
    log_level: str = "INFO"


def load_settings() -> Settings:
    return Settings(
        database_url=os.getenv("DATABASE_URL") or None,
        redis_url=os.getenv("REDIS_URL") or None,
        rabbit_url=os.getenv("RABBIT_URL") or None,
        openai_api_key=os.getenv("OPENAI_API_KEY") or None,
        openai_model=os.getenv("OPENAI_MODEL") or "gpt-4o-mini",
        openai_base_url=os.getenv("OPENAI_BASE_URL") or "https://api.openai.com/v1",
        ai_max_conversations=_int_env("AI_MAX_CONVERSATIONS", 1000),
        default_radius_km=_float_env("DEFAULT_RADIUS_KM", 15.0),
        match_result_limit=_int_env("MATCH_RESULT_LIMIT", 5),
        match_cache_ttl=_int_env("MATCH_CACHE_TTL", 60),
        # 0.05 deg latitude ~ 5.55km
        match_grid_deg=_float_env("MATCH_GRID_DEG", 0.05),
        cors_origin=os.getenv("CORS_ORIGIN") or "http://localhost:3000",
        log_level=os.getenv("LOG_LEVEL") or "INFO",
    )
