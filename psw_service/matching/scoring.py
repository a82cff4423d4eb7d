from typing import NamedTuple

from .geo import distance_km

BASELINE = 100.0
DISTANCE_PENALTY_PER_KM = 2.0
POINTS_PER_STAR = 5.0
POINTS_PER_REVIEW = 0.5
REVIEW_POINTS_CAP = 10.0


class ScoredCandidate(NamedTuple):
    profile: object
    score: float


def score(worker, client_location) -> float:
    distance = distance_km(client_location, worker.location)
    review_points = min(worker.review_count * POINTS_PER_REVIEW, REVIEW_POINTS_CAP)

    total = (
        BASELINE
        - distance * DISTANCE_PENALTY_PER_KM
        + worker.rating * POINTS_PER_STAR
        + review_points
    )
    return max(0.0, total)


def score_all(workers, client_location) -> list[ScoredCandidate]:
    return [ScoredCandidate(w, score(w, client_location)) for w in workers]


def rank(workers, client_location) -> list:
    # sort is stable, so equal scores keep their input order
    scored = sorted(score_all(workers, client_location), key=lambda c: -c.score)
    return [c.profile for c in scored]
