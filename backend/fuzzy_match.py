"""Edit-distance and nearest-value matching for names and design tokens."""

from dataclasses import dataclass
from typing import Iterable, Optional, Sequence


@dataclass(frozen=True)
class NumericCandidate:
    """A numeric design token considered as a binding target."""

    id: str
    name: str
    value: float


def edit_distance(a: str, b: str) -> int:
    """Levenshtein distance. Comparison is case-sensitive; callers lower-case first."""
    if a == b:
        return 0
    if len(a) < len(b):
        a, b = b, a
    if not b:
        return len(a)

    previous = list(range(len(b) + 1))
    for i, ca in enumerate(a, start=1):
        current = [i]
        for j, cb in enumerate(b, start=1):
            current.append(min(
                previous[j] + 1,
                current[j - 1] + 1,
                previous[j - 1] + (ca != cb),
            ))
        previous = current
    return previous[-1]


def fuzzy_threshold(name: str) -> int:
    return 1 if len(name) <= 8 else 2


def find_fuzzy_match(name: str, pool: Iterable[str]) -> Optional[str]:
    """Closest pool name within the length-scaled threshold, or None.

    Matching ignores case, so an entry equal to `name` matches at distance
    zero. Among equally close entries the first one in pool order wins.
    """
    needle = name.lower()
    limit = fuzzy_threshold(name)
    best: Optional[str] = None
    best_distance = limit + 1
    for candidate in pool:
        distance = edit_distance(needle, candidate.lower())
        if distance < best_distance:
            best, best_distance = candidate, distance
    return best


def _is_none_token(name: str) -> bool:
    return name.strip().lower() == "none" or name.split("/")[-1].strip().lower() == "none"


def find_closest_numeric(value: float, candidates: Sequence[NumericCandidate]) -> Optional[NumericCandidate]:
    """Candidate whose value is nearest to `value`.

    A zero value prefers a token named "none" (either the whole name or its
    last path segment) over a numerically equal one. Ties keep the first
    candidate in the given order.
    """
    if not candidates:
        return None
    if value == 0:
        for candidate in candidates:
            if _is_none_token(candidate.name):
                return candidate

    best = candidates[0]
    best_delta = abs(best.value - value)
    for candidate in candidates[1:]:
        delta = abs(candidate.value - value)
        if delta < best_delta:
            best, best_delta = candidate, delta
    return best
