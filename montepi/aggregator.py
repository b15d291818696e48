# Copyright 2020 Uber Technologies, Inc.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""
The aggregation loop. `calc_parallel` starts one sample worker per CPU core,
then repeats the same cycle until it is told to stop:

1. collect exactly one batch count per worker from the shared queue,
2. fold the counts into the running `in/total` pairs,
3. report the new estimate, its distance to the previous one and the
   throughput since the previous report.

Example:
```python
import montepi

inside, total = montepi.sum_previous_iterations(records)
montepi.calc_parallel(inside, total)
```

Progress lines look like:
```
time: 2024-03-31 18:02:11, pi: 3.141592712...(30 digits), delta: 0.000000000...(30 digits), in/total (sum): 814888319013/1037600000000, in/total (this run): 1799960821/2291200000, iterations per sec: 511232K
```
"""

import datetime
import logging
import random
import time
from collections import namedtuple

import montepi.config as config
from montepi.context import _default_context as ctx
from montepi.estimator import delta, float_string, pi, throughput
from montepi.init import check_positive
from montepi.worker import sample_worker, spawn_seeds


logger = logging.getLogger('montepi')

TIME_FORMAT = "%Y-%m-%d %H:%M:%S"
PI_DIGITS = 30

Checkpoint = namedtuple("Checkpoint", ["pi", "total", "time"])

Progress = namedtuple("Progress", [
    "timestamp", "pi", "delta", "inside", "total", "run_inside", "run_total",
    "throughput",
])


def utcnow():
    return datetime.datetime.now(datetime.timezone.utc)


def format_progress(progress):
    """Render one progress record as a single line."""
    return (
        "time: {}, pi: {}, delta: {}, in/total (sum): {}/{}, "
        "in/total (this run): {}/{}, iterations per sec: {}K".format(
            progress.timestamp.strftime(TIME_FORMAT),
            float_string(progress.pi, PI_DIGITS),
            float_string(progress.delta, PI_DIGITS),
            progress.inside, progress.total,
            progress.run_inside, progress.run_total,
            float_string(progress.throughput, 0),
        )
    )


def print_progress(progress):
    print(format_progress(progress), flush=True)


def clamp_counts(inside, total):
    """Replace negative seed counts with 0."""
    if inside < 0:
        logger.warning("negative seed in count %s, using 0", inside)
        inside = 0
    if total < 0:
        logger.warning("negative seed total %s, using 0", total)
        total = 0
    return inside, total


class Aggregator():
    """Owns the running totals and turns batch counts into progress reports.

    The aggregator is the only reader of `queue` and the only writer of the
    running totals, so no locking is needed.

    :param inside: in-circle count carried over from earlier runs.
    :param total: sample count carried over from earlier runs.
    :param parallelism: number of workers, i.e. batch counts per cycle.
    :param sync_every: number of samples in each batch.
    :param queue: anything with a blocking `get()` that returns batch counts.
    :param report: called with a `Progress` once per cycle. Prints to
        stdout by default.
    :param clock: monotonic clock in nanoseconds.
    :param now: returns the current UTC time for the progress timestamp.
    """

    def __init__(self, inside, total, parallelism, sync_every, queue,
                 report=None, clock=time.perf_counter_ns, now=utcnow):
        self.inside = inside
        self.total = total
        self.run_inside = 0
        self.run_total = 0
        self.parallelism = parallelism
        self.sync_every = sync_every
        self.cycles = 0
        self._queue = queue
        self._report = report if report is not None else print_progress
        self._clock = clock
        self._now = now
        self.checkpoint = Checkpoint(pi(inside, total), total, clock())

    def __repr__(self):
        return "<{}({}, {}/{})>".format(
            type(self).__name__, self.parallelism, self.inside, self.total)

    def collect(self):
        """Block until one batch count per worker has arrived and add them
        to the running totals.
        """
        get = self._queue.get
        for _ in range(self.parallelism):
            part = get()
            self.inside += part
            self.run_inside += part

        # every batch is complete, so the sample count is known exactly
        part = self.sync_every * self.parallelism
        self.total += part
        self.run_total += part

    def report_progress(self):
        """Report the current estimate against the last checkpoint and
        replace the checkpoint.

        :returns: the reported `Progress`.
        """
        checkpoint = self.checkpoint
        current = pi(self.inside, self.total)
        elapsed = self._clock() - checkpoint.time

        progress = Progress(
            timestamp=self._now(),
            pi=current,
            delta=delta(current, checkpoint.pi),
            inside=self.inside,
            total=self.total,
            run_inside=self.run_inside,
            run_total=self.run_total,
            throughput=throughput(self.total - checkpoint.total, elapsed),
        )
        self._report(progress)

        self.checkpoint = Checkpoint(current, self.total, self._clock())
        return progress

    def cycle(self):
        self.collect()
        self.cycles += 1
        logger.debug("%s finished cycle %s", self, self.cycles)
        return self.report_progress()

    def run(self, stop_event=None):
        """Repeat `cycle()` until `stop_event` is set.

        :param stop_event: an object with an `is_set()` method, for example
            `threading.Event`. If `None`, run forever.
        """
        while stop_event is None or not stop_event.is_set():
            self.cycle()
        logger.debug("%s stopped after %s cycles", self, self.cycles)


def safe_terminate_worker(proc):
    delay = random.random() * 0.1

    # Stagger termination so workers don't all exit at once
    logger.debug("terminate worker %s with delay %s", proc.name, delay)
    time.sleep(delay)

    if proc.exitcode is None:
        proc.terminate()


def safe_join_worker(proc):
    if proc.is_alive():
        # worker has not yet exited
        logger.debug('cleaning up worker %s', proc.pid)

        proc.join(5)
        if proc.is_alive():
            logger.warning("worker %s didn't exit, killing it", proc.pid)
            proc.kill()
            proc.join()


def calc_parallel(inside, total, parallelism=None, sync_every=None,
                  queue_size=None, seed=None, chunk_size=None, report=None,
                  stop_event=None):
    """
    Start the sample workers and run the aggregation loop.

    Unset parameters are taken from `montepi.config`. `parallelism` falls
    back to the number of CPU cores.

    :param inside: in-circle count of earlier runs. Negative values are
        treated as 0.
    :param total: sample count of earlier runs. Negative values are treated
        as 0.
    :param report: called with a `Progress` once per cycle.
    :param stop_event: the loop stops after the cycle during which this
        event gets set. If `None`, it runs until the process is killed.

    :returns: the `Aggregator` once the loop has stopped.
    """
    inside, total = clamp_counts(inside, total)

    if parallelism is None:
        parallelism = config.parallelism
    if parallelism is None:
        parallelism = ctx.cpu_count()
    if sync_every is None:
        sync_every = config.sync_every
    if queue_size is None:
        queue_size = config.queue_size
    if chunk_size is None:
        chunk_size = config.chunk_size
    if seed is None:
        seed = config.seed

    check_positive("parallelism", parallelism)
    check_positive("sync_every", sync_every)
    check_positive("queue_size", queue_size)
    check_positive("chunk_size", chunk_size)

    queue = ctx.Queue(queue_size)
    aggregator = Aggregator(inside, total, parallelism, sync_every, queue,
                            report=report)

    logger.info("starting %s workers, sync every %s samples, resuming "
                "from %s/%s", parallelism, sync_every, inside, total)

    workers = []
    try:
        for rank, worker_seed in enumerate(spawn_seeds(seed, parallelism)):
            p = ctx.Process(
                target=sample_worker,
                args=(queue, sync_every, worker_seed, chunk_size, rank),
                name="SampleWorker-{}".format(rank),
                daemon=True,
            )
            p.start()
            workers.append(p)

        aggregator.run(stop_event)
    finally:
        logger.debug("stopping %s workers", len(workers))
        for p in workers:
            safe_terminate_worker(p)
        for p in workers:
            safe_join_worker(p)
        queue.close()

    return aggregator
