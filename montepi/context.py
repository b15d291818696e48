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
Processes and queues used to run sample workers.

montepi always starts workers with the `spawn` start method. A worker
process is a regular multiprocessing process which, before running its
target, re-initializes montepi with the config of the process that created
it so that log level and log file are the same on both sides.
"""

import logging
import multiprocessing as mp

import psutil

import montepi.config as config
from montepi.init import init_montepi


logger = logging.getLogger('montepi')

_spawn = mp.get_context("spawn")


class Process(_spawn.Process):
    """A spawned process that carries the current montepi config.

    Example usage:

    ```python
    p = Process(target=f, args=('montepi',), name="Worker")
    p.start()
    ```
    """
    def __init__(self, group=None, target=None, name=None, args=(), kwargs={},
                 *, daemon=None):
        super(Process, self).__init__(group=group, target=target, name=name,
                                      args=args, kwargs=kwargs, daemon=daemon)
        self._montepi_config = config.get_dict()

    def __repr__(self):
        return "{}({}, {})>".format(type(self).__name__, self.name, self.pid)

    def run(self):
        """Run the target function of current process (in current process)

        :returns: return value of the target function
        """
        init_montepi(proc_name=self.name, **self._montepi_config)
        logger.debug("process %s running", self.name)
        return super().run()


class MontepiContext():
    _name = 'spawn'
    Process = Process

    current_process = staticmethod(mp.current_process)

    def active_children(self):
        """Returns a list of live worker processes started by this process."""
        return [p for p in mp.active_children() if isinstance(p, Process)]

    def Queue(self, maxsize=0):
        """Returns a queue shared by processes.

        :param maxsize: if positive, `put` blocks while `maxsize` items are
            waiting in the queue.
        """
        return _spawn.Queue(maxsize)

    def Event(self):
        """Returns an event that can be set from any process or thread"""
        return _spawn.Event()

    def cpu_count(self):
        """Number of logical CPU cores this process may run on."""
        proc = psutil.Process()
        # cpu_affinity is not available on every platform (e.g. macOS)
        if hasattr(proc, "cpu_affinity"):
            cpus = proc.cpu_affinity()
            if cpus:
                return len(cpus)
        return psutil.cpu_count(logical=True) or 1

    def get_context(self, method=None):
        if method is None:
            return self
        if method != "spawn":
            raise ValueError("montepi only supports spawn context")
        return _concrete_contexts[method]


_concrete_contexts = {
        'spawn': MontepiContext()
}

_default_context = _concrete_contexts['spawn']
