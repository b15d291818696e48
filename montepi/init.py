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
import os
import multiprocessing as mp

import montepi.config as montepi_config


POSITIVE_KEYS = ["parallelism", "sync_every", "queue_size", "chunk_size"]


def init_logger(config, proc_name=None):
    logger = logging.getLogger("montepi")
    if config.log_file.lower() == "stdout":
        handler = logging.StreamHandler()
    else:
        log_dir = os.path.dirname(config.log_file)
        if log_dir and not os.path.exists(log_dir):
            os.makedirs(log_dir, exist_ok=True)

        if not proc_name:
            proc_name = mp.current_process().name

        log_file = config.log_file + '.' + proc_name
        handler = logging.FileHandler(log_file, mode="w")

    formatter = logging.Formatter(
        '%(asctime)s %(levelname)s:%(processName)s(%(process)d):'
        '%(threadName)s(%(thread)d){%(filename)s:%(lineno)d} %(message)s')
    handler.setFormatter(formatter)
    if logger.handlers is None or len(logger.handlers) == 0:
        logger.addHandler(handler)
    else:
        logger.handlers[-1].close()
        logger.handlers[-1] = handler
    logger.setLevel(config.log_level)
    logger.propagate = False


def check_positive(name, value):
    if value is None:
        return
    if not isinstance(value, int) or isinstance(value, bool) or value <= 0:
        raise ValueError(
            "{} must be a positive integer, got {!r}".format(name, value))


def init_montepi(proc_name=None, **kwargs):
    """
    Initialize montepi. This function is called when you want to re-initialize
    montepi with new config values and also re-init loggers.

    :param proc_name: process name of current process
    :param kwargs: If kwargs is not None, init montepi with corresponding
        key/value pairs in kwargs as config keys and values.
    """
    for k in POSITIVE_KEYS:
        if k in kwargs:
            check_positive(k, kwargs[k])

    updates = montepi_config.init(**kwargs)

    if "log_level" in updates or "log_file" in updates or proc_name:
        _config = montepi_config.get_object()
        init_logger(_config, proc_name=proc_name)
