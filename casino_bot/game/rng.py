"""
Random sources for the games.

Every game draws from an object with a `random()` method returning a float in
[0, 1). `random.Random` and `random.SystemRandom` both qualify, so tests can
pass a seeded generator or a scripted sequence.
"""
import math
import random
from typing import List, Protocol, Sequence, TypeVar

T = TypeVar("T")


class RandomSource(Protocol):
    def random(self) -> float: ...


def default_rng() -> RandomSource:
    """OS-backed source used when the caller does not inject one."""
    return random.SystemRandom()


def rand_int(rng: RandomSource, low: int, high: int) -> int:
    """Uniform integer in [low, high]."""
    return low + math.floor(rng.random() * (high - low + 1))


def choose_weighted(rng: RandomSource, items: Sequence[T], weights: Sequence[int]) -> T:
    """Pick from `items` with probability proportional to `weights`."""
    total = sum(weights)
    point = rng.random() * total
    cumulative = 0
    for item, weight in zip(items, weights):
        cumulative += weight
        if point < cumulative:
            return item
    return items[-1]


def shuffle(rng: RandomSource, items: List[T]) -> List[T]:
    """Fisher-Yates shuffle in place. Returns the same list."""
    for i in range(len(items) - 1, 0, -1):
        j = rand_int(rng, 0, i)
        items[i], items[j] = items[j], items[i]
    return items
