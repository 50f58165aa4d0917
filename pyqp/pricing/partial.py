import math
import numpy as np
from . import BasePricing
from ..arithmetic import ExactBackend, FilteredBackend

MIN_WINDOW = 8


class PartialExactPricing(BasePricing):
    """
    Scans a rotating window of the non-basic columns. Only if the window
    holds no improving column are the remaining columns scanned, so the
    strategy reports optimality exactly when full pricing would.

    :param window: number of columns per window; defaults to
        max(MIN_WINDOW, ceil(sqrt(n))) for n non-basic columns.
    """
    name = 'partial_exact'
    backend_class = ExactBackend

    def __init__(self, window=None):
        super(PartialExactPricing, self).__init__()
        if window is not None and window < 1:
            raise ValueError("Pricing window must contain at least one column.")
        self.window = window
        self._start = 0

    def init(self, solver):
        super(PartialExactPricing, self).init(solver)
        self._start = 0

    def window_size(self, n):
        if self.window is not None:
            return min(self.window, n)
        return min(max(MIN_WINDOW, int(math.ceil(math.sqrt(n)))), n)

    def _pricing(self, solver):
        js = solver.nonbasic_variables()
        n = len(js)
        if n == 0:
            return None
        size = self.window_size(n)
        start = self._start % n
        order = np.roll(js, -start)
        self._start = start + size
        j = self._select(solver, np.sort(order[:size]))
        if j is None:
            j = self._select(solver, np.sort(order[size:]))
        return j


class PartialFilteredPricing(PartialExactPricing):
    """Rotating window combined with the floating point filter."""
    name = 'partial_filtered'
    backend_class = FilteredBackend
