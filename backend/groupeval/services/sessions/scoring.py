import math
from typing import Dict, Iterable, Mapping, Tuple

from .errors import ValidationError

# (criterion, weight) in rubric order
CRITERIA_WEIGHTS: Tuple[Tuple[str, int], ...] = (
    ('rarity', 3),
    ('social', 3),
    ('distance', 2),
    ('context', 3),
)
CRITERIA = tuple(name for name, _ in CRITERIA_WEIGHTS)

PENALTY_WEIGHTS: Dict[str, int] = {
    'recent': 15,
    'sick': 10,
    'important': 5,
}

RATING_MIN = 1
RATING_MAX = 10


def round_half_away(value: float) -> int:
    """Round to the nearest integer, ties away from zero (2.5 -> 3, -2.5 -> -3)."""
    return int(math.copysign(math.floor(abs(value) + 0.5), value))


def validate_ratings(ratings: Mapping) -> Dict[str, int]:
    """Return a clean ``{criterion: rating}`` dict or raise ValidationError."""
    if not isinstance(ratings, Mapping):
        raise ValidationError('Ratings must be an object')
    unknown = set(ratings) - set(CRITERIA)
    if unknown:
        raise ValidationError(f"Unknown rating criteria: {', '.join(sorted(unknown))}")
    clean = {}
    for name in CRITERIA:
        if name not in ratings or ratings[name] is None:
            raise ValidationError(f'Rating "{name}" is required')
        value = ratings[name]
        # bool is an int subclass; reject it explicitly
        if isinstance(value, bool) or not isinstance(value, int):
            raise ValidationError(f'Rating "{name}" must be an integer')
        if not RATING_MIN <= value <= RATING_MAX:
            raise ValidationError(f'Rating "{name}" must be between {RATING_MIN} and {RATING_MAX}')
        clean[name] = value
    return clean


def individual_score(ratings: Mapping) -> int:
    """Weighted rubric score for one participant, 0 for all-ones up to 99 for all-tens."""
    clean = validate_ratings(ratings)
    total = float(sum(weight * (clean[name] - RATING_MIN) for name, weight in CRITERIA_WEIGHTS))
    return max(0, round_half_away(total))


def validate_penalty_flags(flags: Mapping) -> Dict[str, bool]:
    """Normalise penalty toggles; absent flags are off."""
    if not isinstance(flags, Mapping):
        raise ValidationError('Penalties must be an object')
    unknown = set(flags) - set(PENALTY_WEIGHTS)
    if unknown:
        raise ValidationError(f"Unknown penalties: {', '.join(sorted(unknown))}")
    clean = {}
    for name in PENALTY_WEIGHTS:
        value = flags.get(name, False)
        if not isinstance(value, bool):
            raise ValidationError(f'Penalty "{name}" must be true or false')
        clean[name] = value
    return clean


def penalty_points(flags: Mapping) -> int:
    return sum(weight for name, weight in PENALTY_WEIGHTS.items() if flags.get(name))


def group_score(individual_scores: Iterable[float], flags: Mapping, threshold: int) -> Tuple[int, bool]:
    """Aggregate submitted scores into ``(aggregate, passes)``.

    The aggregate is the sum over criteria of the weighted per-criterion
    averages. Weights are linear, so that equals the mean of the individual
    scores. Active penalties are subtracted before the single final rounding.
    """
    scores = [float(s) for s in individual_scores]
    if not scores:
        raise ValidationError('At least one submitted score is required')
    base = sum(scores) / len(scores)
    aggregate = round_half_away(max(0.0, base - penalty_points(flags)))
    return aggregate, aggregate >= threshold
