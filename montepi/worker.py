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
Sample workers. Each worker draws batches of uniform points in the unit
square and hands the number of points inside the quarter circle to the
aggregator, one message per batch.

Workers never share a random source. `spawn_seeds` derives one independent
`numpy.random.SeedSequence` per worker from a single root seed, so streams
don't overlap even when the root seed is fixed.
"""

import logging
import signal
import sys

import numpy as np

import montepi.config as config


logger = logging.getLogger('montepi')


def spawn_seeds(seed, n):
    """Return `n` independent seed sequences derived from `seed`.

    :param seed: root seed. If `None`, fresh entropy is drawn from the OS.
    """
    return np.random.SeedSequence(seed).spawn(n)


def sample_batch(rng, size, chunk_size=None):
    """Draw `size` points from `rng` and count those with `x*x + y*y <= 1`.

    Points are drawn `chunk_size` at a time so memory use does not depend on
    `size`.

    :returns: the in-circle count as a Python int.
    """
    if chunk_size is None:
        chunk_size = config.chunk_size

    inside = 0
    remaining = size
    while remaining > 0:
        n = min(remaining, chunk_size)
        points = rng.random((2, n))
        inside += int(np.count_nonzero(
            points[0] * points[0] + points[1] * points[1] <= 1.0))
        remaining -= n
    return inside


def handle_signal(signal, frame):
    # run sys.exit() so that atexit handlers can run
    sys.exit()


def sample_worker(queue, sync_every, seed, chunk_size=None, rank=0):
    """
    The entry point of a sample worker process. Runs until terminated.

    :param queue: bounded queue shared with the aggregator. `put` blocks
        while the queue is full.
    :param sync_every: number of samples per batch.
    :param seed: `numpy.random.SeedSequence` owned by this worker.
    :param chunk_size: number of points drawn per numpy call.
    :param rank: index of this worker, only used for logging.
    """
    signal.signal(signal.SIGTERM, handle_signal)
    # Ctrl-C reaches the whole process group, the parent stops the workers
    signal.signal(signal.SIGINT, signal.SIG_IGN)
    # A terminated worker must not wait for its unsent batches to be flushed
    queue.cancel_join_thread()
    logger.debug("sample_worker %s started, sync_every %s", rank, sync_every)

    rng = np.random.default_rng(seed)
    batches = 0
    while True:
        inside = sample_batch(rng, sync_every, chunk_size)
        queue.put(inside)
        batches += 1
        logger.debug("sample_worker %s put batch %s: %s", rank, batches,
                     inside)
