from __future__ import annotations

from typing import Sequence, TypeVar

T = TypeVar("T")

MASK32 = 0xFFFFFFFF
FNV_OFFSET = 2166136261
FNV_PRIME = 16777619
MULBERRY_INCREMENT = 0x6D2B79F5


def fold_hash(key: str) -> int:
    """32-bit FNV-1a over the UTF-16 code units of ``key``."""
    data = key.encode("utf-16-le")
    value = FNV_OFFSET
    for index in range(0, len(data), 2):
        value ^= data[index] | (data[index + 1] << 8)
        value = (value * FNV_PRIME) & MASK32
    return value


def slot_seed(slot_date: str, slot_hour: int) -> int:
    return fold_hash(f"{slot_date}:{slot_hour}")


class Mulberry32:
    """mulberry32: 32-bit state, uniform floats in [0, 1)."""

    def __init__(self, seed: int) -> None:
        self.state = seed & MASK32

    def random(self) -> float:
        self.state = (self.state + MULBERRY_INCREMENT) & MASK32
        t = self.state
        t = ((t ^ (t >> 15)) * (t | 1)) & MASK32
        t = (t ^ ((t + (((t ^ (t >> 7)) * (t | 61)) & MASK32)) & MASK32)) & MASK32
        return (t ^ (t >> 14)) / 4294967296

    def below(self, n: int) -> int:
        return int(self.random() * n)

    def choice(self, items: Sequence[T], fallback: T) -> T:
        if not items:
            return fallback
        return items[self.below(len(items))]

    def sample(self, items: Sequence[T], count: int) -> list[T]:
        """Draw up to ``count`` items without replacement, in draw order."""
        pool = list(items)
        picked: list[T] = []
        while pool and len(picked) < count:
            picked.append(pool.pop(self.below(len(pool))))
        return picked
