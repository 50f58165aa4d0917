from . import BasePricing
from ..arithmetic import ExactBackend, FilteredBackend


class FullExactPricing(BasePricing):
    """
    Evaluates every non-basic column exactly and picks the most negative
    reduced cost.
    """
    name = 'full_exact'
    backend_class = ExactBackend

    def _pricing(self, solver):
        return self._select(solver, solver.nonbasic_variables())


class FullFilteredPricing(FullExactPricing):
    """
    Scans every non-basic column in floating point; exact arithmetic is used
    only to confirm the chosen column and for columns the filter can not
    decide.
    """
    name = 'full_filtered'
    backend_class = FilteredBackend
