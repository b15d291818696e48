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
montepi.cli

This module contains functions for the `montepi` command line tool.

```
$ montepi --records runs.ini run
time: 2024-03-31 18:02:11, pi: 3.141592..., delta: 0.000000..., ...
```

`montepi run` keeps printing progress lines until it gets SIGTERM or is
interrupted with Ctrl-C. To resume later, add the last `in/total (this run)`
values to the record file, see `montepi.records`.
"""

import logging
import signal
import threading

import click

import montepi
import montepi.config as config
from montepi.aggregator import calc_parallel, format_progress, PI_DIGITS
from montepi.estimator import float_string, pi
from montepi.records import load_records, sum_previous_iterations


logger = logging.getLogger('montepi')

CONFIG = {}


def load_seed(records_file):
    """Return the summed `(inside, total)` of `records_file`, or `(0, 0)`."""
    if records_file is None:
        return 0, 0

    records = load_records(records_file)
    return sum_previous_iterations(records)


def echo_progress(progress):
    click.echo(format_progress(progress))


def install_stop_handler(stop_event):
    def handle_signal(signum, frame):
        logger.info("got signal %s, stopping after current cycle", signum)
        stop_event.set()

    signal.signal(signal.SIGTERM, handle_signal)


@click.command()
@click.option("-p", "--parallelism", type=int,
              help="Number of sample workers, defaults to one per CPU core.")
@click.option("--sync-every", type=int,
              help="Samples per worker batch.")
@click.option("--queue-size", type=int,
              help="Capacity of the hand-off queue.")
@click.option("--seed", type=int, help="Root random seed.")
def run(parallelism, sync_every, queue_size, seed):
    """Estimate pi until stopped."""
    try:
        inside, total = load_seed(CONFIG["records_file"])
    except (OSError, ValueError) as e:
        raise click.ClickException(str(e))

    stop_event = threading.Event()
    install_stop_handler(stop_event)

    try:
        calc_parallel(inside, total, parallelism=parallelism,
                      sync_every=sync_every, queue_size=queue_size,
                      seed=seed, report=echo_progress, stop_event=stop_event)
    except ValueError as e:
        raise click.ClickException(str(e))
    except KeyboardInterrupt:
        logger.info("interrupted, workers stopped")


@click.command()
def seed():
    """Print the summed prior runs and their pi estimate."""
    try:
        inside, total = load_seed(CONFIG["records_file"])
    except (OSError, ValueError) as e:
        raise click.ClickException(str(e))

    click.echo("in/total: {}/{}".format(inside, total))
    click.echo("pi: {}".format(float_string(pi(inside, total), PI_DIGITS)))


@click.group()
@click.version_option(montepi.__version__)
@click.option("-r", "--records", "records_file",
              type=click.Path(dir_okay=False),
              help="Prior run file to resume from.")
@click.option("--log-level",
              type=click.Choice(sorted(config.LOG_LEVELS)),
              help="montepi log level.")
@click.option("--log-file",
              help='montepi log file, "stdout" logs to the console.')
def main(records_file, log_level, log_file):
    """montepi command line tool"""
    kwargs = {}
    if log_level:
        kwargs["log_level"] = log_level
    if log_file:
        kwargs["log_file"] = log_file
    if kwargs:
        montepi.init(**kwargs)

    if records_file is None:
        records_file = config.records_file
    CONFIG["records_file"] = records_file


main.add_command(run)
main.add_command(seed)


if __name__ == "__main__":
    main()
