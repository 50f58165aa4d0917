#!/usr/bin/python
"""
An example that runs a random problem.

"""
import logging
import numpy as np
from pyqp import QuadraticProgram, SparseMatrix, LARGER, STATUS_NAMES
from pyqp.pricing import pricing_registry
from pyqp.solver import QPSolver


def random_problem(m, n, density, quadratic=False, seed=0):
    """
    Generate a random problem with m rows and n columns.

    Sparse matrix with density generated using scipy.sparse.rand, rows
    A x >= b with positive b and positive costs, so the problem is feasible
    and bounded. Entries are small integers to keep the exact arithmetic
    manageable.
    """
    from scipy.sparse import rand

    np.random.seed(seed)
    A = rand(m, n, density=density, random_state=seed).tocoo()
    A.data = np.ceil(9*A.data)
    A = SparseMatrix(matrix=A, shape=(m, n))
    b = np.random.randint(1, 10, size=m)
    c = np.random.randint(1, 10, size=n)
    D = None
    if quadratic:
        # D = G^T G is positive semi-definite
        G = np.random.randint(-2, 3, size=(n, n))
        D = G.T.dot(G)
    # rows without entries would be infeasible
    for i in range(m):
        if not A.get_row(i)[0]:
            A.set_value(i, int(np.random.randint(n)), 1)

    return QuadraticProgram(A, b, c, r=[LARGER]*m, D=D)


def solve(m, n, pricing, quadratic=False):
    if pricing not in pricing_registry:
        raise ValueError('Pricing strategy {} not recognised.'.format(pricing))

    qp = random_problem(m, n, 0.1, quadratic=quadratic)
    solver = QPSolver(qp, pricing=pricing)
    status = solver.solve()
    print('Status: {} after {} iterations'.format(STATUS_NAMES[status], solver.number_of_iterations()))
    if solver.is_optimal():
        print('Objective function value: {}'.format(float(solver.solution())))
    print('Valid: {}'.format(solver.is_valid()))


if __name__ == '__main__':
    import argparse
    parser = argparse.ArgumentParser(description='Execute a randomly generated problem.')
    parser.add_argument('m', type=int, help='Number of rows in random problem.')
    parser.add_argument('n', type=int, help='Number of columns in random problem.')
    parser.add_argument('pricing', type=str, help='Name of pricing strategy to use.')
    parser.add_argument('--quadratic', action='store_true', help='Add a random positive semi-definite D.')
    parser.add_argument('-v', '--verbose', action='store_true', help='Log solver progress.')

    args = parser.parse_args()
    logging.basicConfig(level=logging.INFO if args.verbose else logging.WARNING)
    solve(args.m, args.n, args.pricing, quadratic=args.quadratic)
