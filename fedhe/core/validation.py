import math
from numbers import Real
from typing import Any, List, Sequence, Tuple

from ..exceptions import InvalidInputError


def split_contributions(pairs: Sequence[Tuple[Any, float]]) -> Tuple[List[Any], List[float]]:
    """Split (model, weight) pairs into parallel lists, rejecting malformed input."""
    if pairs is None or len(pairs) == 0:
        raise InvalidInputError("Cannot aggregate an empty set of contributions.")

    models, weights = [], []
    for i, pair in enumerate(pairs):
        try:
            model, weight = pair
        except (TypeError, ValueError) as e:
            raise InvalidInputError(f"Contribution {i} is not a (model, weight) pair.") from e
        models.append(model)
        weights.append(weight)
    return models, weights


def check_weights(weights: Sequence[float], expected_count: int) -> List[float]:
    """
    Validate contribution weights.

    Weights must match the number of contributions one-to-one, be finite
    and non-negative, and have a positive sum.
    """
    if weights is None:
        raise InvalidInputError("Scaling factors are required.")
    weights = list(weights)
    if len(weights) != expected_count:
        raise InvalidInputError(
            f"Number of contributions ({expected_count}) must match the number of "
            f"scaling factors ({len(weights)}).",
            {"contributions": expected_count, "scaling_factors": len(weights)},
        )
    if expected_count == 0:
        raise InvalidInputError("Cannot aggregate an empty set of contributions.")

    checked = []
    for i, w in enumerate(weights):
        if isinstance(w, bool) or not isinstance(w, Real):
            raise InvalidInputError(f"Scaling factor {i} is not a real number: {w!r}")
        w = float(w)
        if not math.isfinite(w) or w < 0:
            raise InvalidInputError(f"Scaling factor {i} must be finite and non-negative, got {w}.")
        checked.append(w)

    if max(checked) <= 0:
        raise InvalidInputError("Scaling factors must have a positive sum.")
    return checked


def normalize_weights(weights: Sequence[float], expected_count: int) -> List[float]:
    """Validate and scale weights so they sum to 1. Pre-normalized weights pass through up to rounding."""
    checked = check_weights(weights, expected_count)
    # Scale by the largest weight first so the sum of huge weights stays finite
    largest = max(checked)
    scaled = [w / largest for w in checked]
    total = math.fsum(scaled)
    return [w / total for w in scaled]
