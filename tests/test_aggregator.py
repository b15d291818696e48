import datetime
import itertools
import queue
import threading
from fractions import Fraction

import numpy as np
import pytest

from montepi.aggregator import (
    Aggregator, Checkpoint, Progress, clamp_counts, format_progress,
)
from montepi.estimator import pi
from montepi.worker import sample_batch


NOW = datetime.datetime(2024, 3, 31, 12, 0, 0,
                        tzinfo=datetime.timezone.utc)


def fake_clock(step=10 ** 9):
    ticks = itertools.count(0, step)
    return lambda: next(ticks)


def make_queue(items):
    q = queue.Queue()
    for item in items:
        q.put(item)
    return q


class BatchSource():
    """Queue stand-in that samples a batch on every `get()`."""

    def __init__(self, seed, sync_every):
        self.rng = np.random.default_rng(seed)
        self.sync_every = sync_every

    def get(self):
        return sample_batch(self.rng, self.sync_every, self.sync_every)


class StopAfter():
    """Report callback that sets an event after `n` reports."""

    def __init__(self, n):
        self.n = n
        self.reports = []
        self.event = threading.Event()

    def __call__(self, progress):
        self.reports.append(progress)
        if len(self.reports) >= self.n:
            self.event.set()


class TestAggregator():
    def test_initial_checkpoint(self):
        agg = Aggregator(3, 8, 2, 1000, make_queue([]), report=lambda p: None,
                         clock=lambda: 42)
        assert agg.checkpoint == Checkpoint(Fraction(3, 2), 8, 42)
        assert agg.run_inside == 0
        assert agg.run_total == 0

    def test_single_cycle(self):
        reports = []
        agg = Aggregator(10, 20, 2, 1000, make_queue([400, 420]),
                         report=reports.append, clock=fake_clock(),
                         now=lambda: NOW)
        progress = agg.cycle()

        assert agg.total == 20 + 2000
        assert agg.inside == 10 + 820
        assert agg.run_total == 2000
        assert agg.run_inside == 820
        assert agg.cycles == 1
        assert reports == [progress]

        assert progress.pi == Fraction(4 * 830, 2020)
        assert progress.delta == abs(Fraction(4 * 830, 2020) - 2)
        assert (progress.inside, progress.total) == (830, 2020)
        assert (progress.run_inside, progress.run_total) == (820, 2000)
        # 2000 samples in one fake second
        assert progress.throughput == 2
        assert progress.timestamp == NOW

        assert agg.checkpoint.pi == progress.pi
        assert agg.checkpoint.total == 2020

    def test_run_counters_advance_identically(self):
        agg = Aggregator(1000, 5000, 2, 1000,
                         make_queue([400, 420, 390, 410]),
                         report=lambda p: None, clock=fake_clock())
        agg.cycle()
        agg.cycle()
        assert agg.inside - 1000 == agg.run_inside == 1620
        assert agg.total - 5000 == agg.run_total == 4000

    @pytest.mark.parametrize("order", list(itertools.permutations(
        [100, 200, 300, 0])))
    def test_arrival_order(self, order):
        agg = Aggregator(0, 0, 4, 500, make_queue(order),
                         report=lambda p: None, clock=fake_clock())
        agg.cycle()
        assert agg.total == 500 * 4
        assert agg.inside == 600

    def test_collects_exactly_parallelism(self):
        q = make_queue([1, 2, 3, 4, 5])
        agg = Aggregator(0, 0, 3, 10, q, report=lambda p: None,
                         clock=fake_clock())
        agg.collect()
        assert agg.inside == 6
        assert agg.total == 30
        assert q.qsize() == 2

    def test_delta_non_negative(self):
        agg = Aggregator(0, 0, 2, 1000, make_queue([900, 100, 800, 800]),
                         report=lambda p: None, clock=fake_clock())
        first = agg.cycle()
        second = agg.cycle()
        assert first.delta == first.pi
        assert second.delta >= 0
        assert second.delta == abs(second.pi - first.pi)

    def test_delta_converges(self):
        agg = Aggregator(0, 0, 1, 1000, BatchSource(1234, 1000),
                         report=lambda p: None, clock=fake_clock())
        deltas = [agg.cycle().delta for _ in range(200)]

        assert all(d >= 0 for d in deltas)
        # skip the first cycle, its checkpoint is the empty estimate
        early = sum(deltas[1:6]) / 5
        late = sum(deltas[-5:]) / 5
        assert late < early / 10
        assert abs(float(pi(agg.inside, agg.total)) - 3.14159) < 0.05

    def test_throughput_non_negative(self):
        agg = Aggregator(0, 0, 2, 10, make_queue([0, 0, 10, 10]),
                         report=lambda p: None, clock=fake_clock(1))
        for _ in range(2):
            assert agg.cycle().throughput >= 0

    def test_default_report_prints(self, capsys):
        agg = Aggregator(0, 0, 1, 4, make_queue([3]), clock=fake_clock(),
                         now=lambda: NOW)
        agg.cycle()
        out = capsys.readouterr().out
        assert out.startswith("time: 2024-03-31 12:00:00, pi: 3.000")
        assert out.count("\n") == 1

    def test_run_until_stopped(self):
        stop = StopAfter(3)
        agg = Aggregator(0, 0, 1, 10, make_queue([1, 2, 3, 4, 5]),
                         report=stop, clock=fake_clock())
        agg.run(stop.event)
        assert agg.cycles == 3
        assert agg.inside == 6
        assert agg.total == 30
        assert [p.run_total for p in stop.reports] == [10, 20, 30]

    def test_run_with_stop_set(self):
        event = threading.Event()
        event.set()
        agg = Aggregator(0, 0, 1, 10, make_queue([]), report=lambda p: None)
        agg.run(event)
        assert agg.cycles == 0


class TestClamp():
    def test_clamp(self):
        assert clamp_counts(-1, -2) == (0, 0)
        assert clamp_counts(-1, 8) == (0, 8)
        assert clamp_counts(3, -8) == (3, 0)
        assert clamp_counts(3, 8) == (3, 8)

    def test_clamped_start(self):
        inside, total = clamp_counts(-5, -10)
        agg = Aggregator(inside, total, 1, 10, make_queue([]),
                         report=lambda p: None)
        assert agg.checkpoint.pi == pi(0, 0) == 0


class TestFormat():
    def test_format_progress(self):
        progress = Progress(
            timestamp=NOW,
            pi=Fraction(3, 2),
            delta=Fraction(1, 3),
            inside=3,
            total=8,
            run_inside=1,
            run_total=4,
            throughput=Fraction(2500, 3),
        )
        assert format_progress(progress) == (
            "time: 2024-03-31 12:00:00, "
            "pi: 1.500000000000000000000000000000, "
            "delta: 0.333333333333333333333333333333, "
            "in/total (sum): 3/8, in/total (this run): 1/4, "
            "iterations per sec: 833K"
        )
