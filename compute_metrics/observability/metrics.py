"""Prometheus metrics for worker compute allocation and query execution.

Design principles:
- One explicitly constructed registry per process, handed to every caller
  (allocation loop, worker execution, scrape handler). No module globals.
- Low-cardinality labels only (worker_id, status)
- allocated/spent/current_epoch are epoch-scoped and share one lock, so a
  scrape never pairs a new epoch number with the previous epoch's values
- query_duration is historical and never reset
"""
import logging
import threading
from typing import Iterable, Sequence, Tuple

from prometheus_client import CONTENT_TYPE_LATEST, CollectorRegistry, generate_latest
from prometheus_client.core import GaugeMetricFamily, HistogramMetricFamily
from prometheus_client.registry import Collector
from prometheus_client.utils import floatToGoString

from compute_metrics.exceptions import EncodingError
from compute_metrics.observability.instruments import (
    LabeledGauge,
    LabeledHistogram,
    ScalarGauge,
)

logger = logging.getLogger(__name__)

# Upper bounds in seconds; +Inf is implicit
QUERY_DURATION_BUCKETS = (1.0, 5.0, 10.0, 15.0, 20.0, 25.0, 30.0, 45.0, 60.0, 90.0, 120.0)

WORKER_LABELS = ("worker_id",)
QUERY_LABELS = ("worker_id", "status")


def _full_name(namespace: str, name: str) -> str:
    return "_".join(filter(None, [namespace, name]))


class MetricsRegistry:
    """Holder of all compute allocation and query metrics.

    Mutations are safe to call from any thread. gather_metrics() renders a
    snapshot in the Prometheus text exposition format.
    """

    def __init__(self, namespace: str = "", buckets: Sequence[float] = QUERY_DURATION_BUCKETS):
        """Create the instruments and the backing prometheus registry.

        Args:
            namespace: Optional prefix joined to every metric name with "_"
            buckets: Query duration histogram upper bounds in seconds
        """
        self._epoch_lock = threading.RLock()

        self.allocated_comp_units = LabeledGauge(
            _full_name(namespace, "allocated_comp_units"),
            "amount of compute units allocated for this epoch",
            WORKER_LABELS,
            lock=self._epoch_lock
        )
        self.spent_comp_units = LabeledGauge(
            _full_name(namespace, "spent_comp_units"),
            "amount of compute units spent this epoch",
            WORKER_LABELS,
            lock=self._epoch_lock
        )
        self.current_epoch = ScalarGauge(
            _full_name(namespace, "current_epoch"),
            "current epoch number",
            lock=self._epoch_lock
        )
        self.query_duration = LabeledHistogram(
            _full_name(namespace, "query_duration"),
            "time of query execution in seconds, labeled with worker_id and status",
            QUERY_LABELS,
            buckets
        )

        self._registry = CollectorRegistry(auto_describe=False)
        self._registry.register(_RegistryCollector(self))

    @property
    def content_type(self) -> str:
        """Content-Type header value for gather_metrics() output."""
        return CONTENT_TYPE_LATEST

    def init_workers(self, worker_ids: Iterable[str]):
        """Create (or re-zero) the allocated and spent series for each worker."""
        count = 0
        with self._epoch_lock:
            for worker_id in worker_ids:
                self.allocated_comp_units.set([worker_id], 0)
                self.spent_comp_units.set([worker_id], 0)
                count += 1
        logger.debug(f"Initialized compute unit gauges for {count} workers")

    def new_epoch(self, epoch: int):
        """Set the current epoch and drop every allocated/spent series.

        Callers should follow up with update_allocations() promptly; until
        then the allocation gauges are empty. Use start_epoch() when that
        window is not acceptable.
        """
        with self._epoch_lock:
            self.current_epoch.set(epoch)
            self.allocated_comp_units.reset()
            self.spent_comp_units.reset()
        logger.info(f"Advanced to epoch {epoch}")

    def update_allocations(self, allocations: Iterable[Tuple[str, int]]):
        """Overwrite allocated compute units per worker. Later duplicates win."""
        with self._epoch_lock:
            for worker_id, comp_units in allocations:
                self.allocated_comp_units.set([worker_id], comp_units)

    def start_epoch(self, epoch: int, allocations: Iterable[Tuple[str, int]]):
        """Advance the epoch and apply its allocations as one atomic step."""
        with self._epoch_lock:
            self.new_epoch(epoch)
            self.update_allocations(allocations)

    def spend_comp_units(self, worker_id: str, spent_cus: int):
        self.spent_comp_units.add([worker_id], spent_cus)

    def query_finished(self, task):
        """Record the execution time of a finished task.

        Args:
            task: Object exposing worker_id, status_code and exec_time_ms
                  (see compute_metrics.schemas.FinishedTask)
        """
        self.query_duration.observe(
            [str(task.worker_id), task.status_code],
            task.exec_time_ms / 1000.0
        )

    def gather_metrics(self) -> str:
        """Render every instrument in the Prometheus text format.

        Raises:
            EncodingError: if collection or encoding fails
        """
        try:
            return generate_latest(self._registry).decode("utf-8")
        except Exception as e:
            raise EncodingError(f"Failed to encode metrics: {e}", cause=e) from e


class _RegistryCollector(Collector):
    """Converts instrument snapshots into prometheus metric families."""

    def __init__(self, metrics: MetricsRegistry):
        self._metrics = metrics

    def collect(self):
        m = self._metrics

        with m._epoch_lock:
            epoch = m.current_epoch.snapshot()
            allocated = m.allocated_comp_units.snapshot()
            spent = m.spent_comp_units.snapshot()

        yield self._gauge_family(m.allocated_comp_units, allocated)
        yield self._gauge_family(m.spent_comp_units, spent)
        yield GaugeMetricFamily(m.current_epoch.name, m.current_epoch.documentation, value=epoch)
        yield self._histogram_family(m.query_duration)

    @staticmethod
    def _gauge_family(gauge: LabeledGauge, values) -> GaugeMetricFamily:
        family = GaugeMetricFamily(gauge.name, gauge.documentation, labels=gauge.labelnames)
        for labels in sorted(values):
            family.add_metric(list(labels), values[labels])
        return family

    @staticmethod
    def _histogram_family(histogram: LabeledHistogram) -> HistogramMetricFamily:
        family = HistogramMetricFamily(
            histogram.name, histogram.documentation, labels=histogram.labelnames
        )
        series = histogram.snapshot()
        for labels in sorted(series):
            sample = series[labels]
            buckets = [
                [floatToGoString(bound), count]
                for bound, count in zip(histogram.buckets, sample.bucket_counts)
            ]
            buckets.append(["+Inf", sample.count])
            family.add_metric(list(labels), buckets, sample.sum)
        return family
