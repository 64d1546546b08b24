"""In-memory metric instruments.

Each instrument is a mapping from label tuple to value guarded by a lock.
Series are created on first write and only disappear on reset().

Instruments can share a lock (an RLock when the group is also locked as a
whole) so that a group of them is read and mutated as one unit. See
MetricsRegistry for the epoch-scoped group.
"""
import math
import threading
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

LabelValues = Tuple[str, ...]


class _Instrument:
    """Common name/label bookkeeping."""

    def __init__(
        self,
        name: str,
        documentation: str,
        labelnames: Sequence[str] = (),
        lock=None
    ):
        self.name = name
        self.documentation = documentation
        self.labelnames = tuple(labelnames)
        self._lock = lock if lock is not None else threading.Lock()

    def _key(self, labels: Iterable[str]) -> LabelValues:
        key = tuple(str(v) for v in labels)
        if len(key) != len(self.labelnames):
            raise ValueError(
                f"{self.name}: expected labels {self.labelnames}, got {key}"
            )
        return key


class LabeledGauge(_Instrument):
    """Integer gauge keyed by label values."""

    def __init__(self, name, documentation, labelnames, lock=None):
        super().__init__(name, documentation, labelnames, lock)
        self._values: Dict[LabelValues, int] = {}

    def set(self, labels: Iterable[str], value: int):
        key = self._key(labels)
        with self._lock:
            self._values[key] = value

    def add(self, labels: Iterable[str], amount: int):
        """Add to a series, creating it at `amount` if absent."""
        key = self._key(labels)
        with self._lock:
            self._values[key] = self._values.get(key, 0) + amount

    def get(self, labels: Iterable[str]) -> Optional[int]:
        key = self._key(labels)
        with self._lock:
            return self._values.get(key)

    def reset(self):
        """Drop every series."""
        with self._lock:
            self._values.clear()

    def snapshot(self) -> Dict[LabelValues, int]:
        with self._lock:
            return dict(self._values)


class ScalarGauge(_Instrument):
    """Unlabeled integer gauge."""

    def __init__(self, name, documentation, lock=None):
        super().__init__(name, documentation, (), lock)
        self._value = 0

    def set(self, value: int):
        with self._lock:
            self._value = value

    def get(self) -> int:
        with self._lock:
            return self._value

    def snapshot(self) -> int:
        return self.get()


class HistogramSample:
    """Point-in-time copy of one histogram series."""

    __slots__ = ("bucket_counts", "sum", "count")

    def __init__(self, bucket_counts: List[int], sum: float, count: int):
        self.bucket_counts = bucket_counts
        self.sum = sum
        self.count = count


class LabeledHistogram(_Instrument):
    """Histogram keyed by label values.

    Bucket counts are stored cumulatively: an observation increments every
    bucket whose upper bound is >= the value. The +Inf bucket is implicit and
    always equals the series count.
    """

    def __init__(self, name, documentation, labelnames, buckets: Sequence[float], lock=None):
        super().__init__(name, documentation, labelnames, lock)
        bounds = [float(b) for b in buckets]
        if not bounds:
            raise ValueError(f"{name}: at least one bucket is required")
        if bounds != sorted(bounds) or len(set(bounds)) != len(bounds):
            raise ValueError(f"{name}: buckets must be strictly increasing")
        if any(math.isinf(b) or math.isnan(b) for b in bounds):
            raise ValueError(f"{name}: buckets must be finite, +Inf is implicit")
        self.buckets = tuple(bounds)
        self._series: Dict[LabelValues, HistogramSample] = {}

    def observe(self, labels: Iterable[str], value: float):
        key = self._key(labels)
        with self._lock:
            sample = self._series.get(key)
            if sample is None:
                sample = HistogramSample([0] * len(self.buckets), 0.0, 0)
                self._series[key] = sample
            for i, bound in enumerate(self.buckets):
                if value <= bound:
                    sample.bucket_counts[i] += 1
            sample.sum += value
            sample.count += 1

    def snapshot(self) -> Dict[LabelValues, HistogramSample]:
        with self._lock:
            return {
                key: HistogramSample(list(s.bucket_counts), s.sum, s.count)
                for key, s in self._series.items()
            }
