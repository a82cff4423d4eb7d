from .availability import is_available, parse_hhmm
from .filters import (
    by_availability,
    by_certifications,
    by_min_rating,
    by_proximity,
    by_service_type,
)
from .geo import distance_km, haversine
from .pipeline import DEFAULT_LIMIT, MatchingPipeline
from .scoring import ScoredCandidate, rank, score

__all__ = [
    "DEFAULT_LIMIT",
    "MatchingPipeline",
    "ScoredCandidate",
    "by_availability",
    "by_certifications",
    "by_min_rating",
    "by_proximity",
    "by_service_type",
    "distance_km",
    "haversine",
    "is_available",
    "parse_hhmm",
    "rank",
    "score",
]
