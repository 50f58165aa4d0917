from decimal import Decimal
from fractions import Fraction
import numpy as np
import pytest
from pyqp.arithmetic import (to_exact, to_bound, to_double, is_finite, exact_array, approx_array,
                             underflow_slack, backend_registry, ExactBackend, FilteredBackend,
                             INFINITY, MIN_NORMAL)
from pyqp.linalg import zeros


class TestConversion(object):

    def test_to_exact(self, ):
        assert to_exact(3) == Fraction(3)
        assert to_exact(np.int64(-2)) == Fraction(-2)
        assert to_exact(0.5) == Fraction(1, 2)
        assert to_exact('1.25') == Fraction(5, 4)
        assert to_exact('-7/2') == Fraction(-7, 2)
        assert to_exact(Decimal('0.1')) == Fraction(1, 10)
        assert isinstance(to_exact(True), Fraction)

    def test_float_is_exact(self, ):
        # 0.1 is not representable; the conversion keeps the binary value
        assert to_exact(0.1) != Fraction(1, 10)
        assert float(to_exact(0.1)) == 0.1

    def test_invalid(self, ):
        with pytest.raises(ValueError):
            to_exact(np.inf)
        with pytest.raises(ValueError):
            to_exact(float('nan'))
        with pytest.raises(ValueError):
            to_exact('abc')

    def test_bounds(self, ):
        assert to_bound(np.inf) == INFINITY
        assert to_bound('-inf') == -INFINITY
        assert to_bound('Infinity') == INFINITY
        assert to_bound(2) == Fraction(2)
        assert not is_finite(to_bound('inf'))
        assert is_finite(Fraction(10**400))

    def test_to_double(self, ):
        assert to_double(Fraction(1, 4)) == 0.25
        assert to_double(Fraction(10**400)) == np.inf
        assert to_double(-Fraction(10**400)) == -np.inf

    def test_arrays(self, ):
        arr = exact_array([[1, 0.5], ['1/3', 2]])
        assert arr.dtype == object
        assert arr[1, 0] == Fraction(1, 3)
        assert exact_array([1, 2, 3, 4], shape=(2, 2)).shape == (2, 2)
        assert approx_array(arr).dtype == np.float64


def _data():
    A = exact_array([[1, 2, 0], [0, 1, '1/3']])
    c = exact_array([1, -1, 2])
    D = exact_array([[2, 0, 0], [0, 0, 0], [0, 0, 1]])
    y = exact_array([1, 0, 3])
    lam = exact_array(['1/2', -1])
    return A, c, D, y, lam


class TestBackends(object):

    def test_registry(self, ):
        assert backend_registry['exact'] is ExactBackend
        assert backend_registry['filtered'] is FilteredBackend

    def test_exact(self, ):
        A, c, D, y, lam = _data()
        backend = ExactBackend()
        backend.prepare(A, c, D)
        values, bounds = backend.reduced_costs([0, 1, 2], y, lam)
        # c + D y - A^T lam
        expected = [Fraction(1) + 2 - Fraction(1, 2), Fraction(-1) - 1 + 1, Fraction(2) + 3 + Fraction(1, 3)]
        assert list(values) == expected
        assert all(b == 0 for b in bounds)

    def test_filtered_encloses_exact(self, ):
        A, c, D, y, lam = _data()
        exact = ExactBackend()
        exact.prepare(A, c, D)
        filtered = FilteredBackend()
        filtered.prepare(A, c, D)
        js = [0, 1, 2]
        values, _ = exact.reduced_costs(js, y, lam)
        approx, bounds = filtered.reduced_costs(js, y, lam)
        for v, a, b in zip(values, approx, bounds):
            assert a - b <= v <= a + b

    def test_filtered_linear(self, ):
        A, c, D, y, lam = _data()
        filtered = FilteredBackend()
        filtered.prepare(A, c)
        approx, bounds = filtered.reduced_costs([1], y, lam)
        assert abs(approx[0] - (-1 - 2*0.5 + 1)) <= bounds[0]

    def test_filtered_overflow(self, ):
        # values beyond the double range give an undecided result
        A = zeros((1, 1))
        A[0, 0] = Fraction(10**400)
        c = exact_array([1])
        filtered = FilteredBackend()
        filtered.prepare(A, c)
        approx, bounds = filtered.reduced_costs([0], exact_array([0]), exact_array([1]))
        assert bounds[0] == np.inf

    def test_filtered_underflow(self, ):
        # the multiplier underflows to 0.0 while its coefficient is huge
        A = exact_array([[10**100]])
        c = exact_array([Fraction(1, 10**250)])
        lam = exact_array([Fraction(1, 10**330)])
        exact = c[0] - A[0, 0]*lam[0]
        assert exact < 0
        filtered = FilteredBackend()
        filtered.prepare(A, c)
        approx, bounds = filtered.reduced_costs([0], exact_array([0]), lam)
        assert approx[0] - bounds[0] <= exact <= approx[0] + bounds[0]
        # the sign is left to the exact evaluation
        assert approx[0] - bounds[0] <= 0

    def test_filtered_underflow_quadratic(self, ):
        A = zeros((0, 1))
        c = exact_array([Fraction(1, 10**250)])
        D = exact_array([[-Fraction(1, 10**320)]])
        y = exact_array([10**100])
        exact = c[0] + D[0, 0]*y[0]
        filtered = FilteredBackend()
        filtered.prepare(A, c, D)
        approx, bounds = filtered.reduced_costs([0], y, exact_array([]))
        assert approx[0] - bounds[0] <= exact <= approx[0] + bounds[0]

    def test_underflow_slack(self, ):
        values = exact_array([0, Fraction(1, 10**330), Fraction(1, 10**310), 1])
        slack = underflow_slack(values, approx_array(values))
        assert list(slack) == [0.0, MIN_NORMAL, MIN_NORMAL, 0.0]
