import sys
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from compute_metrics.observability.instruments import (  # noqa: E402
    LabeledGauge,
    LabeledHistogram,
    ScalarGauge,
)


def test_gauge_set_overwrites_and_add_accumulates():
    gauge = LabeledGauge("g", "test gauge", ["worker_id"])

    gauge.set(["w1"], 10)
    gauge.set(["w1"], 4)
    gauge.add(["w2"], 3)
    gauge.add(["w2"], 5)

    assert gauge.get(["w1"]) == 4
    assert gauge.get(["w2"]) == 8
    assert gauge.get(["w3"]) is None


def test_gauge_reset_drops_all_series():
    gauge = LabeledGauge("g", "test gauge", ["worker_id"])
    gauge.set(["w1"], 1)
    gauge.add(["w2"], 2)

    gauge.reset()

    assert gauge.snapshot() == {}
    gauge.add(["w1"], 7)
    assert gauge.snapshot() == {("w1",): 7}


def test_gauge_snapshot_is_a_copy():
    gauge = LabeledGauge("g", "test gauge", ["worker_id"])
    gauge.set(["w1"], 1)

    snap = gauge.snapshot()
    gauge.set(["w1"], 2)

    assert snap == {("w1",): 1}


def test_gauge_rejects_wrong_label_count():
    gauge = LabeledGauge("g", "test gauge", ["worker_id"])
    try:
        gauge.set(["w1", "extra"], 1)
    except ValueError as e:
        assert "worker_id" in str(e)
    else:
        raise AssertionError("expected ValueError")


def test_concurrent_adds_are_not_lost():
    gauge = LabeledGauge("g", "test gauge", ["worker_id"])
    amounts = [1, 2, 3, 5, 8] * 400

    with ThreadPoolExecutor(max_workers=16) as pool:
        for amount in amounts:
            pool.submit(gauge.add, ["w1"], amount)

    assert gauge.get(["w1"]) == sum(amounts)


def test_scalar_gauge_defaults_to_zero():
    gauge = ScalarGauge("epoch", "current epoch")
    assert gauge.get() == 0
    gauge.set(12)
    assert gauge.snapshot() == 12


def test_histogram_buckets_are_cumulative():
    histogram = LabeledHistogram("h", "test histogram", ["worker_id", "status"], [1, 5, 10])

    histogram.observe(["w1", "ok"], 0.5)
    histogram.observe(["w1", "ok"], 5.0)
    histogram.observe(["w1", "ok"], 30.0)

    sample = histogram.snapshot()[("w1", "ok")]
    assert sample.bucket_counts == [1, 2, 2]
    assert sample.count == 3
    assert sample.sum == 35.5


def test_histogram_series_are_independent_per_label_pair():
    histogram = LabeledHistogram("h", "test histogram", ["worker_id", "status"], [1, 5])

    histogram.observe(["w1", "ok"], 2.0)
    histogram.observe(["w1", "timeout"], 2.0)

    series = histogram.snapshot()
    assert set(series) == {("w1", "ok"), ("w1", "timeout")}
    assert series[("w1", "ok")].count == 1


def test_histogram_rejects_invalid_buckets():
    for buckets in ([], [5, 1], [1, 1], [1, float("inf")]):
        try:
            LabeledHistogram("h", "test histogram", ["worker_id"], buckets)
        except ValueError:
            continue
        raise AssertionError(f"expected ValueError for {buckets}")


if __name__ == "__main__":
    test_gauge_set_overwrites_and_add_accumulates()
    test_gauge_reset_drops_all_series()
    test_gauge_snapshot_is_a_copy()
    test_gauge_rejects_wrong_label_count()
    test_concurrent_adds_are_not_lost()
    test_scalar_gauge_defaults_to_zero()
    test_histogram_buckets_are_cumulative()
    test_histogram_series_are_independent_per_label_pair()
    test_histogram_rejects_invalid_buckets()
    print("ok - test_instruments")
