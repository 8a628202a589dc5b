"""Lightweight wall-clock timers.

Provides:
    - timer(): stage timer yielding its elapsed time, with optional sink
    - TimerAccumulator: repeated measurements (e.g. per LOD level)

Used to measure:
    - Structure estimation
    - Line integral convolution
    - Full LOD render
"""

import logging
import time
from contextlib import contextmanager
from typing import Callable, Optional

logger = logging.getLogger(__name__)


@contextmanager
def timer(name: str, sink: Optional[Callable[[str, float], None]] = None):
    """Time a pipeline stage.

    Yields a record whose ``elapsed_s`` is filled in when the block exits, so
    callers can keep the figure (e.g. for run metadata) as well as report it.

    Parameters
    ----------
    name : str
        Stage name
    sink : Optional[Callable[[str, float], None]]
        Callback(name, elapsed_seconds); logged at DEBUG if None

    Examples
    --------
    >>> with timer("render") as t:
    ...     tone = render_lod(img, levels=3)
    >>> t['elapsed_s']
    """
    record = {'name': name, 'elapsed_s': 0.0}
    start = time.perf_counter()
    try:
        yield record
    finally:
        record['elapsed_s'] = time.perf_counter() - start
        if sink is not None:
            sink(name, record['elapsed_s'])
        else:
            logger.debug(f"{name}: {record['elapsed_s']:.3f} s")


class TimerAccumulator:
    """Accumulate timing measurements for averaging.

    Attributes
    ----------
    name : str
        Timer name
    total_time : float
        Accumulated seconds
    count : int
        Number of measurements
    """

    def __init__(self, name: str):
        self.name = name
        self.total_time = 0.0
        self.count = 0

    @contextmanager
    def measure(self):
        start = time.perf_counter()
        try:
            yield
        finally:
            self.total_time += time.perf_counter() - start
            self.count += 1

    @property
    def mean(self) -> float:
        return self.total_time / self.count if self.count else 0.0

    def __repr__(self) -> str:
        return f"TimerAccumulator({self.name!r}, total={self.total_time:.3f}s, count={self.count})"
