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


import logging
import multiprocessing as mp
import montepi.config as montepi_config
from montepi import context
from montepi.init import init_montepi
from typing import List
from typing import TYPE_CHECKING

__version__: str
_names: List[str]


__version__ = "0.1.0"

logger = logging.getLogger('montepi')


if mp.current_process().name == "MainProcess":
    # Worker processes get their logger initialized with their own process
    # name before running. A file based logger could be created, no logging
    # lines after this in this module.
    init_montepi()
else:
    montepi_config.init()


def reset() -> None:
    init_montepi()


def init(**kwargs) -> None:
    """
    Initialize montepi. This function is called when you want to
    re-initialize montepi with new config values and also re-init loggers.

    :param kwargs: If kwargs is not None, init montepi with corresponding
        key/value pairs in kwargs as config keys and values.
    """
    init_montepi(**kwargs)


_names = [x for x in dir(context._default_context) if x[0] != "_"]
globals().update((name, getattr(context._default_context, name))
                 for name in _names)

from montepi.estimator import pi, delta, throughput, float_string  # noqa E402
from montepi.records import (  # noqa E402
    PriorRun, load_records, sum_previous_iterations,
)
from montepi.aggregator import (  # noqa E402
    Aggregator, Progress, calc_parallel, format_progress,
)

__all__ = _names + [
    "pi", "delta", "throughput", "float_string",
    "PriorRun", "load_records", "sum_previous_iterations",
    "Aggregator", "Progress", "calc_parallel", "format_progress",
    "init", "reset",
]


if TYPE_CHECKING:
    current_process = context.MontepiContext.current_process
    active_children = context.MontepiContext.active_children
    Process = context.MontepiContext.Process
    Queue = context.MontepiContext.Queue
    Event = context.MontepiContext.Event
    cpu_count = context.MontepiContext.cpu_count
    get_context = context.MontepiContext.get_context
