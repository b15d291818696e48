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
This module deals with montepi configurations.

There are 3 way of setting montepi configurations: config file, environment
variable and Python code. The priorities are: Python code > environment
variable > config file.

#### Config file

montepi config file is a plain text file following Python's
[configparser](https://docs.python.org/3/library/configparser.html) file
format. It needs to be named `.montepiconfig` and put into the directory where
you launch your code.

An example `.montepiconfig` file:
```
[default]
log_level=debug
log_file=stdout
parallelism=4
records_file=runs.ini
```

#### Environment variable

Alternatively, you can also use environment variables to pass configurations
to montepi. The environment variable names are in format `MONTEPI_` + config
name in upper case.

For example, an equivalent way of specifying the above config using
environment variables is:

```
MONTEPI_LOG_LEVEL=debug MONTEPI_LOG_FILE=stdout MONTEPI_PARALLELISM=4 montepi run
```

#### Python code

You can also set montepi config in your Python code:

```python
import montepi
...
def main():
    montepi.init(log_level="debug", sync_every=10_000_000)
```

Note that the configurations need to be set before the workers are started.
"""

import os
import logging
import configparser


_current_config = None
logger = logging.getLogger('montepi')


LOG_LEVELS = {
        "debug": logging.DEBUG,
        "info": logging.INFO,
        "warning": logging.WARNING,
        "error": logging.ERROR,
        "critical": logging.CRITICAL,
}

DEFAULT_SYNC_EVERY = 100_000_000
DEFAULT_QUEUE_SIZE = 1024
DEFAULT_CHUNK_SIZE = 1_000_000

# Keys whose string values (from config file or environment) are ints
INT_KEYS = ["parallelism", "sync_every", "queue_size", "chunk_size", "seed"]


class Config(object):
    """montepi configuration object. Available configurations:

    | key          | Type | Default | Notes |
    | ------------ |:------|:-----|:------|
    | log_level    | str/int | `logging.INFO` | montepi log level. This config accepts either a int value (log levels from `logging` module like `logging.INFO`) or strings: `debug`, `info`, `warning`, `error`, `critical` |
    | log_file     | str   | `/tmp/montepi.log` | Default log file path. montepi will append the process name to this value and create one log file for each process. A special value `stdout` means to print the logs to standard output |
    | parallelism  | int   | None  | Number of sample workers. `None` means one worker per CPU core |
    | sync_every   | int   | `100000000` | Number of samples each worker draws before handing its count to the aggregator |
    | queue_size   | int   | `1024` | Capacity of the hand-off queue between workers and the aggregator |
    | chunk_size   | int   | `1000000` | Number of points drawn per vectorized call inside a batch |
    | seed         | int   | None  | Root seed of the worker random generators. `None` draws fresh entropy |
    | records_file | str   | None  | Prior run file used to resume a computation |
    """
    def __init__(self, conf_file=None):
        self.log_level = logging.INFO
        self.log_file = "/tmp/montepi.log"
        self.parallelism = None
        self.sync_every = DEFAULT_SYNC_EVERY
        self.queue_size = DEFAULT_QUEUE_SIZE
        self.chunk_size = DEFAULT_CHUNK_SIZE
        self.seed = None
        self.records_file = None

        if conf_file is None:
            conf_file = ".montepiconfig"

        # Load config from config file
        if os.path.exists(conf_file):
            logger.debug("loading config from %s", conf_file)
            config = configparser.ConfigParser()
            config.read(conf_file)
            for k in config["default"]:
                if k in self.__dict__:
                    self.__dict__[k] = config["default"][k]
                else:
                    raise ValueError(
                        'unknown config key "{}" in {}. Valid keys: '
                        '{}'.format(k, conf_file,
                                    [key for key in self.__dict__]))

        else:
            logger.debug("no montepi config file (%s) found", conf_file)

        # load environment variable overwrites
        for k in self.__dict__:
            name = "MONTEPI_" + k.upper()
            val = os.environ.get(name, None)
            if val:
                self.__dict__[k] = val

        # rewrite values
        if isinstance(self.log_level, str):
            level = self.log_level.lower()
            if level not in LOG_LEVELS:
                logger.debug("bad logging level: %s", self.log_level)
                level = logging.NOTSET
            else:
                level = LOG_LEVELS[level]
            self.log_level = level

        for k in INT_KEYS:
            val = getattr(self, k)
            if isinstance(val, str):
                setattr(self, k, int(val.replace("_", "")))

    def __repr__(self):
        return repr(self.__dict__)

    @classmethod
    def from_dict(cls, kv):
        obj = cls()
        for k in kv:
            setattr(obj, k, kv[k])

        return obj


def get_object():
    """
    Get a Config object representing current montepi config

    :returns: a Config object
    """
    return Config.from_dict(get_dict())


def get_dict():
    """
    Get current montepi config in a dictionary

    :returns: a Python dictionary with all the current montepi configurations
    """
    global_vars = globals()

    return {k: global_vars[k] for k in vars(_current_config)}


def init(**kwargs):
    """
    Init montepi and set config values.

    :param kwargs: If kwargs is not None, init montepi with corresponding
        key/value pairs in kwargs as config keys and values.

    :returns: A list of config keys that was updated in this function call.
    """
    _config = Config()

    for k in kwargs:
        if k not in vars(_config):
            raise ValueError('unknown config key "{}"'.format(k))

    # handle overwrites
    _config.__dict__.update(kwargs)

    if isinstance(_config.log_level, str):
        _config.log_level = LOG_LEVELS.get(_config.log_level.lower(),
                                           logging.NOTSET)

    updates = []
    global_vars = globals()

    for k in vars(_config):
        # fine diffs and write them
        val = getattr(_config, k)
        if k not in global_vars or global_vars[k] != val:
            global_vars[k] = val
            updates.append(k)

    global_vars["_current_config"] = _config

    logger.debug("Inited montepi with config: %s", vars(_config))

    return updates
