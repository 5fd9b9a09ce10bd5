from __future__ import annotations

import time
from typing import Callable, Iterable, Iterator, TypeVar

T = TypeVar("T")


class Pacer:
    """Fixed spacing between upstream calls so providers don't rate-limit us."""

    def __init__(self, delay_sec: float = 0.0, sleep: Callable[[float], None] = time.sleep) -> None:
        self.delay_sec = max(0.0, delay_sec)
        self.sleep = sleep

    def paced(self, items: Iterable[T]) -> Iterator[T]:
        """Yield items, waiting ``delay_sec`` between consecutive ones."""
        first = True
        for item in items:
            if not first and self.delay_sec > 0:
                self.sleep(self.delay_sec)
            first = False
            yield item


NO_PACING = Pacer(0.0)
