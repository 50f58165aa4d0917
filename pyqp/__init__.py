# MPS sections
NAME = 1
ROWS = 2
COLUMNS = 3
RHS = 4
RANGES = 5
BOUNDS = 6
QUADS = 7
END = 8

# Row relations
SMALLER = -1
EQUAL = 0
LARGER = 1

# Solver status
OPTIMAL = 0
INFEASIBLE = 2
UNBOUNDED = 4
NOT_SOLVED = 5

STATUS_NAMES = {
    OPTIMAL: 'OPTIMAL',
    INFEASIBLE: 'INFEASIBLE',
    UNBOUNDED: 'UNBOUNDED',
    NOT_SOLVED: 'NOT_SOLVED',
}

from . import errors
from . import arithmetic
from . import qp
from . import pricing
from . import solver
from . import certify
from . import mps

from .qp import SparseMatrix, QuadraticProgram
from .solver import QPSolver, Tags
from .pricing import pricing_registry
