import random
from typing import Optional, Sequence, TypeVar

T = TypeVar('T')


def choose(items: Sequence[T], rng: Optional[random.Random] = None) -> T:
    """Pick a random element from a non-empty sequence."""
    if not items:
        raise ValueError('cannot choose from an empty sequence')
    rng = rng or random
    return items[int(rng.random() * len(items))]


def clamp(value, low, high):
    return min(max(value, low), high)
