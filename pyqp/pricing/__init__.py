"""
Pricing strategies select the column that enters the basis.

Every strategy evaluates reduced costs through a numeric back-end. With the
exact back-end values are Fractions; with the filtered back-end they are
doubles with an error bound, and only columns whose sign the filter can
not decide are re-evaluated exactly by the solver.
"""
import logging
import numpy as np

logger = logging.getLogger(__name__)

pricing_registry = {}


class MetaPricing(type):
    def __new__(cls, clsname, bases, attrs):
        newclass = super(MetaPricing, cls).__new__(cls, clsname, bases, attrs)
        if newclass.name is not None:
            pricing_registry[newclass.name] = newclass
        return newclass


class BasePricing(metaclass=MetaPricing):
    """
    A strategy is used by one solver at a time. The solver calls ``init``
    at the start of each phase and ``pricing`` once per iteration; the
    latter returns the index of an improving column or None if there is
    none, i.e. the current basis is optimal.

    After a degenerate iteration Bland's rule (the improving column of
    lowest index) is used until the solver makes progress again.
    """
    name = None
    backend_class = None

    def __init__(self):
        self.backend = self.backend_class()
        self.exact_evaluations = 0

    def init(self, solver):
        self.backend.prepare(solver.A, solver.c, solver.D)

    def pricing(self, solver):
        if solver.is_degenerate():
            return self._bland(solver)
        return self._pricing(solver)

    def _pricing(self, solver):
        raise NotImplementedError()

    def _exact(self, solver, j):
        self.exact_evaluations += 1
        return solver.reduced_cost(j)

    def _select(self, solver, js):
        """
        Column of js with the most negative reduced cost, lowest index first
        on ties; None if no reduced cost is negative.
        """
        if len(js) == 0:
            return None
        values, bounds = self.backend.reduced_costs(js, solver.y, solver.lam)
        if self.backend.name == 'exact':
            best = None
            for value, j in zip(values, js):
                if value < 0 and (best is None or value < best[0]):
                    best = (value, j)
            return None if best is None else int(best[1])

        certain = np.flatnonzero(values + bounds < 0)
        if certain.size > 0:
            j = int(js[certain[np.argmin(values[certain])]])
            if self._exact(solver, j) < 0:
                return j
            logger.warning("Filter bound violated for column %d; falling back to exact pricing", j)
            undecided = np.arange(len(js))
        else:
            undecided = np.flatnonzero(values - bounds <= 0)
        best = None
        for k in undecided:
            mu = self._exact(solver, int(js[k]))
            if mu < 0 and (best is None or mu < best[0]):
                best = (mu, int(js[k]))
        return None if best is None else best[1]

    def _bland(self, solver):
        js = solver.nonbasic_variables()
        if len(js) == 0:
            return None
        values, bounds = self.backend.reduced_costs(js, solver.y, solver.lam)
        exact = self.backend.name == 'exact'
        for k, j in enumerate(js):
            if exact:
                if values[k] < 0:
                    return int(j)
            elif values[k] + bounds[k] < 0:
                return int(j)
            elif values[k] - bounds[k] <= 0 and self._exact(solver, int(j)) < 0:
                return int(j)
        return None


# register strategies
from .full import FullExactPricing, FullFilteredPricing
from .partial import PartialExactPricing, PartialFilteredPricing
