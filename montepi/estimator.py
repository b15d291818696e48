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
Exact arithmetic for the π estimate.

Totals reach 10^12 samples and consecutive estimates differ only in far
decimal places, so every value here is a `fractions.Fraction`. Floats are
never used on the aggregation side.

Example:
```python
>>> pi(3, 4)
Fraction(3, 1)
>>> float_string(pi(785, 1000), 5)
'3.14000'
```
"""

from fractions import Fraction


NS_PER_SECOND = 10 ** 9


def pi(inside, total):
    """Return the π estimate `4 * inside / total` as an exact fraction.

    :param inside: number of samples inside the quarter circle.
    :param total: number of samples drawn. `0` is treated as `1` so that the
        estimate is `0` before any sample has been collected.
    """
    if total == 0:
        total = 1
    return Fraction(4 * inside, total)


def delta(current, previous):
    """Absolute difference between two estimates."""
    return abs(current - previous)


def throughput(samples, elapsed_ns):
    """Samples per second in thousands (`K/s`).

    :param samples: samples drawn during the interval.
    :param elapsed_ns: interval length in nanoseconds. `0` is treated as `1`.
    """
    if elapsed_ns <= 0:
        elapsed_ns = 1
    return Fraction(samples * NS_PER_SECOND, elapsed_ns * 1000)


def float_string(value, digits):
    """Render `value` as a decimal string with exactly `digits` fractional
    digits, rounding half away from zero.
    """
    value = Fraction(value)
    scale = 10 ** digits
    q, r = divmod(abs(value.numerator) * scale, value.denominator)
    if 2 * r >= value.denominator:
        q += 1

    sign = "-" if value < 0 and q != 0 else ""
    if digits == 0:
        return "{}{}".format(sign, q)

    integer, fraction = divmod(q, scale)
    return "{}{}.{:0{}d}".format(sign, integer, fraction, digits)
