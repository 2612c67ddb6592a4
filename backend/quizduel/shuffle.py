"""Seeded, reproducible permutations.

The same seed always yields the same order, so a session's question set can
be rebuilt from its id alone.
"""

from __future__ import annotations

import hashlib
import math
from typing import List, Sequence, TypeVar

T = TypeVar("T")

MAX_UINT32 = 0xFFFFFFFF


def seeded_random(seed: str, counter: int) -> float:
    """Return a float in ``[0, 1]`` derived from ``sha256(f"{seed}:{counter}")``.

    The leading 4 bytes of the digest are read as a big-endian unsigned
    integer and divided by ``0xFFFFFFFF``.
    """

    digest = hashlib.sha256(f"{seed}:{counter}".encode("utf-8")).digest()
    return int.from_bytes(digest[:4], "big") / MAX_UINT32


def seeded_shuffle(pool: Sequence[T], seed: str) -> List[T]:
    """Fisher-Yates shuffle of ``pool`` driven by :func:`seeded_random`.

    One counter is shared by every draw of the call, starting at 0.
    """

    items = list(pool)
    counter = 0
    for i in range(len(items) - 1, 0, -1):
        rnd = seeded_random(seed, counter)
        counter += 1
        # a draw of exactly 1.0 would point one past i
        j = min(math.floor(rnd * (i + 1)), i)
        items[i], items[j] = items[j], items[i]
    return items
