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
*Prior run records* let a computation pick up where it last stopped. Each
record is the `in/total` pair of one earlier, finished run. At startup all
records are summed and the sums seed the running totals.

Records are kept in a plain text file following Python's configparser format.
Each key in the `[runs]` section is a free-form label, each value is an
`in/total` pair:

```
[runs]
# long serial run on a single core
2024-03-31 serial = 321228337250/409000000000
2024-03-31 parallel 1 = 4398286571/5600000000
```

To resume a run, copy the `in/total (this run)` values of the last progress
line into a new entry. **Do not** use the `in/total (sum)` values: they
already include every earlier record and would be counted twice. Nothing in
montepi can detect such a mistake because runs carry no identity.
"""

import configparser
import logging
from collections import namedtuple
from typing import Iterable, List, Tuple, Union


logger = logging.getLogger('montepi')

RUNS_SECTION = "runs"


class PriorRun(namedtuple("PriorRun", ["inside", "total", "label"])):
    """The `in/total` pair of one earlier run."""
    __slots__ = ()

    def __new__(cls, inside, total, label=""):
        return super(PriorRun, cls).__new__(cls, inside, total, label)


def sum_previous_iterations(
    records: Iterable[Union[PriorRun, Tuple[int, int]]]
) -> Tuple[int, int]:
    """Sum `inside` and `total` over all records.

    Records are not validated here, negative values pass through.

    :returns: a `(inside, total)` tuple. `(0, 0)` for no records.
    """
    in_sum = 0
    total_sum = 0
    for item in records:
        in_sum += item[0]
        total_sum += item[1]
    return in_sum, total_sum


def parse_record(label: str, text: str) -> PriorRun:
    """Parse a `"in/total"` string into a PriorRun."""
    parts = text.split("/")
    if len(parts) != 2:
        raise ValueError(
            'bad record "{}": expected "in/total", got "{}"'.format(
                label, text))

    try:
        inside, total = (int(p.strip().replace("_", "")) for p in parts)
    except ValueError:
        raise ValueError(
            'bad record "{}": "{}" is not a pair of integers'.format(
                label, text))

    return PriorRun(inside, total, label)


def load_records(path: str) -> List[PriorRun]:
    """Load prior run records from `path`, keeping the file order."""
    parser = configparser.ConfigParser(
        delimiters=("=",), comment_prefixes=("#", ";"), interpolation=None)
    # keep labels as written
    parser.optionxform = str

    with open(path) as f:
        try:
            parser.read_file(f)
        except configparser.Error as e:
            raise ValueError("{}: {}".format(path, e))

    if not parser.has_section(RUNS_SECTION):
        raise ValueError(
            'no [{}] section in record file {}'.format(RUNS_SECTION, path))

    records = []
    for label, text in parser.items(RUNS_SECTION):
        try:
            records.append(parse_record(label, text))
        except ValueError as e:
            raise ValueError("{}: {}".format(path, e))

    logger.debug("loaded %s records from %s", len(records), path)
    return records
