# topgrid/common/iter.py
from __future__ import annotations

from typing import Callable, Iterable, Iterator, TypeVar

T = TypeVar("T")


def chunked(it: Iterable[T], size: int) -> Iterator[list[T]]:
    """Yield fixed-size lists from an iterable (last chunk may be smaller)."""
    if size < 1:
        raise ValueError(f"chunk size must be >= 1, got {size}")
    buf: list[T] = []
    for x in it:
        buf.append(x)
        if len(buf) >= size:
            yield buf
            buf = []
    if buf:
        yield buf


def take_padded(it: Iterable[T], length: int, fill: Callable[[int], T]) -> list[T]:
    """
    Return exactly `length` elements: the first `length` of `it`, then
    `fill(index)` for every missing position.
    """
    out: list[T] = []
    for x in it:
        if len(out) >= length:
            break
        out.append(x)
    while len(out) < length:
        out.append(fill(len(out)))
    return out
