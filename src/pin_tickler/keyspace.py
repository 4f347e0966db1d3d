import random
from typing import Optional, Tuple

Keyspace = Tuple[int, ...]


def shuffle(values: list[int], rng: Optional[random.Random] = None) -> list[int]:
    """Fisher-Yates shuffle, in place. Returns the same list."""
    rng = rng or random.SystemRandom()
    for i in range(len(values) - 1, 0, -1):
        j = rng.randrange(i + 1)
        values[i], values[j] = values[j], values[i]
    return values


def generate(min_value: int, max_value: int, rng: Optional[random.Random] = None) -> Keyspace:
    """Generate a uniformly shuffled permutation of every integer in [min_value, max_value]."""
    if min_value > max_value:
        raise ValueError(f"Invalid keyspace range: min {min_value} > max {max_value}")
    return tuple(shuffle(list(range(min_value, max_value + 1)), rng))
