"""
Candidate filters.

Every filter returns a new list in the input's order and leaves the input and
its profiles untouched. Optional criteria (service type, rating,
certifications) are no-ops when the criterion is missing.
"""
from .availability import is_available
from .geo import distance_km


def norm(s: str) -> str:
    return (s or "").strip().lower()


def by_proximity(workers, client_location, radius_km: float) -> list:
    return [w for w in workers if distance_km(client_location, w.location) <= radius_km]


def by_availability(workers, requested_date, start_time: str, end_time: str) -> list:
    return [
        w for w in workers
        if is_available(w.availability, requested_date, start_time, end_time)
    ]


def by_service_type(workers, service_type: str | None) -> list:
    wanted = norm(service_type)
    if not wanted:
        return list(workers)
    return [w for w in workers if any(norm(s) == wanted for s in w.service_types)]


def by_min_rating(workers, min_rating: float | None) -> list:
    if not min_rating or min_rating <= 0:
        return list(workers)
    return [w for w in workers if w.rating >= min_rating]


def by_certifications(workers, required: list[str] | None) -> list:
    wanted = {norm(c) for c in (required or []) if norm(c)}
    if not wanted:
        return list(workers)
    return [w for w in workers if wanted <= {norm(c) for c in w.certifications}]
