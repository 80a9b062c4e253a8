"""Seeding strategies: order participants so consecutive pairs are round-1 opponents."""
from __future__ import annotations

import math
import random
from typing import Callable, Dict, List, Optional, Sequence

from tourney.services.bracket_types import Participant
from tourney.services.errors import UnknownSeedingStrategy

SeedFn = Callable[[Sequence[Participant]], List[Participant]]


def _weight_key(p: Participant) -> float:
    # Missing weight sorts after every real weight
    return p.weight if p.weight is not None else math.inf


def bracket_order(num_slots: int) -> List[int]:
    """Zero-based standard bracket order for a power-of-two number of slots.

    [0, 1] -> [0, 3, 1, 2] -> [0, 7, 3, 4, 1, 6, 2, 5] ...
    Adjacent entries share a parent, and 0 and 1 end up in opposite halves.
    """
    order = [0]
    while len(order) < num_slots:
        span = len(order) * 2
        order = [x for seed in order for x in (seed, span - 1 - seed)]
    return order


def weighted_seed(participants: Sequence[Participant]) -> List[Participant]:
    """Professional seeding: strongest vs weakest, 2nd vs 2nd-weakest, etc.

    Sort is stable, so equal weights keep registration order. Complete pairs
    are placed in bracket order so the top two seeds can only meet in the
    final of a power-of-two field. With an odd count the middle seed is
    emitted last and alone (it gets the bye).
    """
    ranked = sorted(participants, key=_weight_key)
    n = len(ranked)
    pairs = [(ranked[i], ranked[n - 1 - i]) for i in range(n // 2)]

    seeded: List[Participant] = []
    if pairs:
        size = 1 << (len(pairs) - 1).bit_length()
        for idx in bracket_order(size):
            if idx < len(pairs):
                seeded.extend(pairs[idx])
    if n % 2:
        seeded.append(ranked[n // 2])
    return seeded


def random_seed(
    participants: Sequence[Participant], rng: Optional[random.Random] = None
) -> List[Participant]:
    """Unseeded: uniform random permutation (Fisher-Yates)."""
    shuffled = list(participants)
    (rng or random).shuffle(shuffled)
    return shuffled


SEEDING_STRATEGIES: Dict[str, SeedFn] = {
    "weighted": weighted_seed,
    "random": random_seed,
}


def get_seeding_strategy(name: str) -> SeedFn:
    try:
        return SEEDING_STRATEGIES[(name or "").strip().lower()]
    except KeyError:
        raise UnknownSeedingStrategy(name) from None
