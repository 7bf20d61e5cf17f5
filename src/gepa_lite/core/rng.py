# Copyright (c) 2025 Lakshya A Agrawal and the GEPA contributors
# https://github.com/gepa-ai/gepa

"""Deterministic random stream backed by a single 32-bit integer.

The whole generator state is one unsigned integer so that a checkpoint can
restore it exactly. ``xorshift32`` is the pure transition function;
``Xorshift32`` is a thin holder exposing the subset of the ``random.Random``
API the strategies use.
"""

from collections.abc import MutableSequence
from typing import Any

MASK_32 = 0xFFFFFFFF
DEFAULT_STATE = 123456789


def seed_to_state(seed: int) -> int:
    state = seed & MASK_32
    return state or DEFAULT_STATE


def xorshift32(state: int) -> int:
    x = state & MASK_32
    x ^= (x << 13) & MASK_32
    x ^= x >> 17
    x ^= (x << 5) & MASK_32
    return x


class Xorshift32:
    def __init__(self, seed: int = 0, *, state: int | None = None):
        self.state = seed_to_state(seed) if state is None else state & MASK_32

    def random(self) -> float:
        """Advance the state and return a float in [0, 1)."""
        self.state = xorshift32(self.state)
        return self.state / 4294967296

    def shuffle(self, items: MutableSequence[Any]) -> None:
        # Fisher-Yates, walking from the tail
        for i in range(len(items) - 1, 0, -1):
            j = int(self.random() * (i + 1))
            items[i], items[j] = items[j], items[i]

    def getstate(self) -> int:
        return self.state

    def setstate(self, state: int) -> None:
        self.state = state & MASK_32

    def __repr__(self) -> str:
        return f"Xorshift32(state={self.state})"
