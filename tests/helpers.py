from fractions import Fraction
import numpy as np
from pyqp import QuadraticProgram, SparseMatrix, OPTIMAL, LARGER
from pyqp.pricing import pricing_registry
from pyqp.solver import QPSolver

pricing_names = sorted(pricing_registry.keys())


def random_problem(m, n, density, quadratic=False, seed=0):
    """
    Generate a random problem with m rows and n columns.
    Sparse matrix with density generated using scipy.sparse.rand; rows are
    A x >= b with b > 0 and c > 0 so the problem is feasible and bounded.
    """
    from scipy.sparse import rand

    np.random.seed(seed)
    A = rand(m, n, density=density, random_state=seed).tocoo()
    A.data = np.ceil(9*A.data)
    A = SparseMatrix(matrix=A, shape=(m, n))
    for i in range(m):
        if not A.get_row(i)[0]:
            A.set_value(i, int(np.random.randint(n)), 1)
    b = np.random.randint(1, 10, size=m)
    c = np.random.randint(1, 10, size=n)
    D = None
    if quadratic:
        G = np.random.randint(-2, 3, size=(n, n))
        D = G.T.dot(G)

    return QuadraticProgram(A, b, c, r=[LARGER]*m, D=D)


def solve(qp, pricing='partial_filtered', **kwargs):
    """Solve qp and check that the result certifies."""
    solver = QPSolver(qp, pricing=pricing, **kwargs)
    solver.solve()
    assert solver.is_valid(), solver.certifier.errors
    return solver


def solve_optimal(qp, pricing='partial_filtered', **kwargs):
    solver = solve(qp, pricing=pricing, **kwargs)
    assert solver.status() == OPTIMAL
    return solver.solution(), list(solver.variable_values())


def fractions(values):
    return [Fraction(v) for v in values]
