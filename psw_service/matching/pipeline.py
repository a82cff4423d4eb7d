import logging

from . import filters
from .scoring import rank

DEFAULT_LIMIT = 5

_DEFAULT = object()

logger = logging.getLogger(__name__)


class MatchingPipeline:
    """
    Filters a worker roster down to the candidates that fit a request and
    orders them best first.

    Stateless: one instance is shared by every request handler.
    """

    def __init__(self, default_limit: int = DEFAULT_LIMIT):
        self.default_limit = default_limit

    @staticmethod
    def effective_radius(request) -> float:
        prefs = request.preferences
        if prefs and prefs.max_distance is not None:
            return min(request.radius_km, prefs.max_distance)
        return request.radius_km

    def candidates(self, workers, request) -> list:
        """All workers passing the request's filters, unranked."""
        prefs = request.preferences

        found = filters.by_proximity(workers, request.location, self.effective_radius(request))
        logger.debug("proximity: %d of %d", len(found), len(workers))

        found = filters.by_availability(found, request.date, request.start_time, request.end_time)
        logger.debug("availability: %d", len(found))

        if request.service_type:
            found = filters.by_service_type(found, request.service_type)
            logger.debug("service type %r: %d", request.service_type, len(found))

        if prefs and prefs.min_rating:
            found = filters.by_min_rating(found, prefs.min_rating)
            logger.debug("min rating %s: %d", prefs.min_rating, len(found))

        if prefs and prefs.certifications:
            found = filters.by_certifications(found, prefs.certifications)
            logger.debug("certifications: %d", len(found))

        return found

    def match(self, workers, request, limit=_DEFAULT) -> list:
        """
        Ranked matches for ``request``.

        ``limit`` defaults to the pipeline's default; pass None for every match.
        """
        if limit is _DEFAULT:
            limit = self.default_limit

        ranked = rank(self.candidates(workers, request), request.location)
        if limit is not None:
            ranked = ranked[:limit]
        return ranked
