"""
Seedable random draws shared by every stochastic operator of the solver.
"""

import random
from typing import List, MutableSequence, Optional

from tsp_core import InvalidInput


class RandomSource:
    """
    Bounded-integer and probability draws from one seeded generator.

    A fixed seed gives a reproducible stream. Without a seed, one is drawn
    from OS entropy at construction and kept in ``seed`` so the run can be
    replayed.
    """

    def __init__(self, seed: Optional[int] = None):
        if seed is None:
            seed = random.SystemRandom().getrandbits(63)
        self.seed = seed
        self._rng = random.Random(seed)

    def uniform_int(self, lo: int, hi: int) -> int:
        """Uniform integer in [lo, hi)."""
        if hi <= lo:
            raise InvalidInput(f"Empty range [{lo}, {hi})")
        return self._rng.randrange(lo, hi)

    def probability(self) -> float:
        """Uniform float in [0, 1)."""
        return self._rng.random()

    def shuffle(self, seq: MutableSequence[int]):
        """Shuffle in place: each index i is swapped with a uniform index in [0, len)."""
        n = len(seq)
        for i in range(n):
            j = self.uniform_int(0, n)
            seq[i], seq[j] = seq[j], seq[i]

    def permutation(self, n: int) -> List[int]:
        """Identity permutation of length n, shuffled."""
        perm = list(range(n))
        self.shuffle(perm)
        return perm

    def __repr__(self):
        return f"RandomSource(seed={self.seed})"
