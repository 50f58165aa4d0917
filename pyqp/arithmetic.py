"""
Exact numbers and the numeric back-ends used to evaluate reduced costs.

All data seen by the solver is held as ``fractions.Fraction`` so that every
pivoting decision is exact. Floating point values appear only in the
filter back-end, where every approximate value comes with an error bound,
and in ``to_double`` which is meant for display.
"""
import math
from decimal import Decimal
from fractions import Fraction
import numpy as np

# Unit roundoff of IEEE double precision
EPS = 2.0**-53
# Absolute slack covering underflow in the filtered evaluation
TINY = 1.0e-300
# Smallest positive normal double
MIN_NORMAL = 2.0**-1022

INFINITY = np.inf


def to_exact(value):
    """
    Convert value to an exact Fraction.

    Floats are converted without rounding, strings may be any decimal or
    rational literal understood by Fraction ('1.5e3', '-7/2').
    """
    if isinstance(value, Fraction):
        return value
    if isinstance(value, (bool, np.bool_)):
        return Fraction(int(value))
    if isinstance(value, (int, np.integer)):
        return Fraction(int(value))
    if isinstance(value, (float, np.floating)):
        value = float(value)
        if not math.isfinite(value):
            raise ValueError("Can not convert non-finite value {} to an exact number.".format(value))
        return Fraction(value)
    if isinstance(value, Decimal):
        if not value.is_finite():
            raise ValueError("Can not convert non-finite value {} to an exact number.".format(value))
        return Fraction(value)
    if isinstance(value, str):
        try:
            return Fraction(value.strip())
        except ValueError:
            raise ValueError("Can not convert {!r} to an exact number.".format(value))
    return Fraction(value)


def to_bound(value):
    """
    Convert a bound to an exact number, keeping +/-infinity as float infinities.
    """
    if isinstance(value, (float, np.floating)) and math.isinf(value):
        return INFINITY if value > 0 else -INFINITY
    if isinstance(value, str) and value.strip().lower().lstrip('+-') in ('inf', 'infinity'):
        return -INFINITY if value.strip().startswith('-') else INFINITY
    return to_exact(value)


def is_finite(value):
    return not (isinstance(value, (float, np.floating)) and math.isinf(value))


def to_double(value):
    """Lossy conversion for display."""
    try:
        return float(value)
    except OverflowError:
        return INFINITY if value > 0 else -INFINITY


def exact_array(values, shape=None):
    """Return a numpy object array of Fractions."""
    arr = np.asarray(values, dtype=object)
    out = np.empty(arr.shape, dtype=object)
    for index, value in np.ndenumerate(arr):
        out[index] = to_exact(value)
    if shape is not None:
        out = out.reshape(shape)
    return out


def approx_array(values):
    """Float64 copy of an exact array; values too large for a double become inf."""
    arr = np.asarray(values, dtype=object)
    out = np.empty(arr.shape, dtype=np.float64)
    for index, value in np.ndenumerate(arr):
        out[index] = to_double(value)
    return out


def underflow_slack(values, approx):
    """
    MIN_NORMAL where a nonzero exact value is approximated by zero or a
    subnormal double, zero elsewhere.
    """
    nonzero = np.asarray(np.asarray(values, dtype=object) != 0, dtype=bool)
    return np.where(nonzero & (np.abs(approx) < MIN_NORMAL), MIN_NORMAL, 0.0)


backend_registry = {}


class MetaBackend(type):
    def __new__(cls, clsname, bases, attrs):
        newclass = super(MetaBackend, cls).__new__(cls, clsname, bases, attrs)
        if newclass.name is not None:
            backend_registry[newclass.name] = newclass
        return newclass


class BaseBackend(metaclass=MetaBackend):
    """
    Evaluates the reduced costs

    .. math:
        \\mu_j = c_j + D_j y - A_j^T \\lambda

    for a batch of columns. ``reduced_costs`` returns ``(values, bounds)``
    such that the exact value lies in ``[values - bounds, values + bounds]``.
    """
    name = None

    def prepare(self, A, c, D=None):
        raise NotImplementedError()

    def reduced_costs(self, js, y, lam):
        raise NotImplementedError()


class ExactBackend(BaseBackend):
    name = 'exact'

    def prepare(self, A, c, D=None):
        self.A = A
        self.c = c
        self.D = D

    def reduced_costs(self, js, y, lam):
        js = np.asarray(js, dtype=int)
        values = self.c[js] - self.A[:, js].T.dot(lam)
        if self.D is not None:
            values = values + self.D[js, :].dot(y)
        values = np.array([to_exact(v) for v in values], dtype=object)
        return values, np.zeros(len(js))


class FilteredBackend(BaseBackend):
    """
    Floating point evaluation with a forward error bound.

    For k terms evaluated in double precision from correctly rounded inputs
    the error is below (k + 2) EPS sum|terms|; the bound used here is twice
    that, plus TINY for underflow. Inputs that have no normal double
    approximation carry an absolute error of up to MIN_NORMAL, which is
    added for each term with its partner's magnitude.
    """
    name = 'filtered'

    def prepare(self, A, c, D=None):
        self.A = approx_array(A)
        self.absA = np.abs(self.A)
        self.lostA = underflow_slack(A, self.A)
        self.c = approx_array(c)
        self.lostc = underflow_slack(c, self.c)
        if D is not None:
            self.D = approx_array(D)
            self.absD = np.abs(self.D)
            self.lostD = underflow_slack(D, self.D)
        else:
            self.D = None
            self.absD = None
            self.lostD = None

    def reduced_costs(self, js, y, lam):
        js = np.asarray(js, dtype=int)
        lamf = approx_array(lam)
        lostlam = underflow_slack(lam, lamf)
        nterms = 1 + len(lamf)
        with np.errstate(invalid='ignore', over='ignore'):
            values = self.c[js] - self.A[:, js].T.dot(lamf)
            mags = np.abs(self.c[js]) + self.absA[:, js].T.dot(np.abs(lamf))
            lost = (self.lostc[js] + self.lostA[:, js].T.dot(np.abs(lamf)) +
                    self.absA[:, js].T.dot(lostlam))
            if self.D is not None:
                yf = approx_array(y)
                losty = underflow_slack(y, yf)
                nterms += len(yf)
                values += self.D[js, :].dot(yf)
                mags += self.absD[js, :].dot(np.abs(yf))
                lost += self.lostD[js, :].dot(np.abs(yf)) + self.absD[js, :].dot(losty)
            bounds = 2.0*(nterms + 3)*EPS*mags + 2.0*lost + TINY
        bad = ~(np.isfinite(values) & np.isfinite(bounds))
        values[bad] = 0.0
        bounds[bad] = np.inf
        return values, bounds
