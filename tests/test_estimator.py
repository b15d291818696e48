from fractions import Fraction

import pytest

from montepi.estimator import delta, float_string, pi, throughput


class TestPi():
    @pytest.mark.parametrize("inside,total", [
        (0, 1), (1, 1), (3, 4), (785, 1000),
        (321228337250, 409000000000),
        (814888319013, 1037600000000),
    ])
    def test_exact_ratio(self, inside, total):
        assert pi(inside, total) == Fraction(4 * inside, total)

    def test_zero_total(self):
        assert pi(0, 0) == 0
        assert pi(5, 0) == 20

    def test_result_is_fraction(self):
        assert isinstance(pi(1, 3), Fraction)
        assert pi(1, 3) == Fraction(4, 3)

    def test_large_totals_keep_small_deltas(self):
        # consecutive estimates 10^12 samples in differ far beyond float
        # precision but are still distinct
        a = pi(785398163397, 10 ** 12)
        b = pi(785398163397 + 1, 10 ** 12 + 1)
        assert a != b
        assert delta(a, b) == abs(a - b)
        assert delta(a, b) > 0


class TestDelta():
    def test_absolute(self):
        assert delta(Fraction(3), Fraction(7, 2)) == Fraction(1, 2)
        assert delta(Fraction(7, 2), Fraction(3)) == Fraction(1, 2)
        assert delta(Fraction(3), Fraction(3)) == 0


class TestThroughput():
    def test_thousands_per_second(self):
        # 2,000,000 samples in 1s -> 2000K/s
        assert throughput(2_000_000, 10 ** 9) == 2000
        # 5000 samples in 2ms -> 2500K/s
        assert throughput(5000, 2 * 10 ** 6) == 2500

    @pytest.mark.parametrize("samples,elapsed", [
        (0, 1), (0, 10 ** 9), (1, 10 ** 12), (10 ** 12, 1),
    ])
    def test_non_negative(self, samples, elapsed):
        assert throughput(samples, elapsed) >= 0

    def test_zero_elapsed(self):
        assert throughput(1000, 0) == throughput(1000, 1)


class TestFloatString():
    def test_fixed_digits(self):
        assert float_string(Fraction(3, 2), 30) == "1." + "5" + "0" * 29
        assert float_string(Fraction(1, 3), 30) == "0." + "3" * 30
        assert float_string(Fraction(7), 3) == "7.000"

    def test_rounding(self):
        assert float_string(Fraction(2, 3), 2) == "0.67"
        assert float_string(Fraction(1, 8), 2) == "0.13"
        assert float_string(Fraction(-1, 8), 2) == "-0.13"
        assert float_string(Fraction(-1, 1000), 2) == "0.00"

    def test_integer_output(self):
        assert float_string(Fraction(5, 2), 0) == "3"
        assert float_string(Fraction(2500, 3), 0) == "833"
        assert float_string(0, 0) == "0"

    def test_pi_digits(self):
        s = float_string(pi(785398163397, 10 ** 12), 30)
        assert s.startswith("3.141592653588")
        assert len(s.split(".")[1]) == 30
