"""
Exceptions raised by pyqp.

Infeasible and unbounded problems are reported through the solver status,
never by raising.
"""


class FormatError(ValueError):
    """A problem description is malformed."""


class PreconditionError(RuntimeError):
    """A result was requested that the current solver status does not provide."""


class ValidityFailure(RuntimeError):
    """The certifier rejected a claimed solution. This is a solver defect."""
    def __init__(self, errors):
        self.errors = list(errors)
        super(ValidityFailure, self).__init__('; '.join(self.errors))
