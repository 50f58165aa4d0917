"""
Exact primal active-set solver for convex quadratic and linear programs.

The program is first brought into standard form (see qp.StandardForm).
Phase I solves an auxiliary linear program on artificial variables to find
a feasible basis; phase II then improves the objective one entering column
at a time. Every quantity that decides a pivot is computed in exact
rational arithmetic, so the result does not depend on rounding.

Phase II keeps the invariant that the current point y is the optimum of
the program restricted to the basic variables F, i.e. it solves

    .. math:
        \\begin{bmatrix} D_{FF} & A_F^T \\\\ A_F & 0 \\end{bmatrix}
        \\begin{bmatrix} y_F \\\\ -\\lambda \\end{bmatrix} =
        \\begin{bmatrix} -c_F \\\\ b \\end{bmatrix}

with all other variables at zero. For linear programs the matrix reduces
to the basis matrix A_F and the method is the revised simplex method.
"""
import logging
from collections import namedtuple
from collections.abc import Sequence
import numpy as np
from numpy.linalg import LinAlgError
from . import OPTIMAL, INFEASIBLE, UNBOUNDED, NOT_SOLVED, STATUS_NAMES
from .arithmetic import to_exact, to_double
from .certify import Certifier
from .errors import FormatError, PreconditionError, ValidityFailure
from .linalg import zeros, inverse, insert_update, remove_update, pivot_update, ZERO, ONE
from .pricing import pricing_registry

logger = logging.getLogger(__name__)

DEFAULT_PRICING = 'partial_filtered'

Tags = namedtuple('Tags', ['is_linear', 'is_symmetric', 'has_equalities_only_and_full_rank',
                           'is_in_standard_form'])
Tags.__new__.__defaults__ = (False, False, False, False)
Tags.__doc__ = """
Properties of a program that the caller asserts to hold. Each tag lets the
solver skip work; asserting a tag that does not hold gives undefined
results.

:param is_linear: ignore D and use the simplex specialisation
:param is_symmetric: D is symmetric; otherwise (D + D^T)/2 is used
:param has_equalities_only_and_full_rank: all rows are equalities and A
    has full row rank
:param is_in_standard_form: all bounds are 0 <= x < inf
"""


class VariableValues(Sequence):
    """
    Values of the original variables, computed on access from the final
    standard form point. May be iterated any number of times.
    """
    def __init__(self, standard_form, y):
        self._offset = standard_form.offset
        self._y = y
        self._columns = [[] for _ in range(standard_form.n)]
        for p, (k, s) in enumerate(standard_form.columns):
            self._columns[k].append((p, s))

    def __len__(self):
        return len(self._columns)

    def __getitem__(self, index):
        if isinstance(index, slice):
            return [self[i] for i in range(*index.indices(len(self)))]
        if index < 0:
            index += len(self)
        if not 0 <= index < len(self):
            raise IndexError("Variable index out of range.")
        value = self._offset[index]
        for p, s in self._columns[index]:
            value = value + s*self._y[p]
        return to_exact(value)


class QPSolver(object):
    """
    Solve a QuadraticProgram.

    :param qp: the program; it must be valid and is not modified
    :param pricing: name of a registered pricing strategy or an instance of
        one. Defaults to 'partial_filtered'.
    :param tags: Tags asserted for the program
    :param max_iterations: stop with status NOT_SOLVED after this many
        pivots; unlimited by default
    """
    def __init__(self, qp, pricing=None, tags=None, max_iterations=None):
        if not qp.is_valid():
            raise FormatError("Can not solve an invalid program: {}".format(qp.error()))
        if pricing is None:
            pricing = DEFAULT_PRICING
        if isinstance(pricing, str):
            try:
                pricing = pricing_registry[pricing]()
            except KeyError:
                raise ValueError("Pricing strategy {} not recognised.".format(pricing))
        self.qp = qp
        self.pricing_strategy = pricing
        self.tags = Tags() if tags is None else tags
        self.max_iterations = max_iterations
        self.certifier = None

        self._status = None
        self._iterations = 0
        self._phase = None
        self._sf = None
        self._point = None
        self._multipliers = None
        self._objective = None
        self._farkas = None
        self._ray = None
        self._basic = None

    # Solver state seen by the pricing strategies:
    #   A, b, c, D  current phase data (numpy object arrays, D None if linear)
    #   y, lam      current point and row multipliers
    #   basis       list of basic columns

    def solve(self):
        """Run both phases and return the final status."""
        if self._status is not None:
            return self._status
        tags = self.tags
        self._sf = sf = self.qp.to_standard_form(
            linear=tags.is_linear, symmetric=tags.is_symmetric,
            nonnegative=tags.is_in_standard_form, equalities=tags.has_equalities_only_and_full_rank)
        logger.info("Standard form with %d rows and %d columns (%s)", sf.nrows, sf.ncols,
                    'linear' if sf.D is None else 'quadratic')

        self._phase_one()
        if self._status is None:
            self._phase_two()
        logger.info("Finished with status %s after %d iterations", STATUS_NAMES[self._status],
                    self._iterations)
        return self._status

    def _setup(self, A, b, c, D, basis, nenter):
        self.A, self.b, self.c, self.D = A, b, c, D
        self.m, self.N = A.shape
        self._nenter = nenter
        self.basis = list(basis)
        self._in_basis = np.zeros(self.N, dtype=bool)
        for k in self.basis:
            self._in_basis[k] = True
        self._linear = D is None
        self._degenerate = False
        self._factorize()
        self._update_values()
        self.pricing_strategy.init(self)

    def _basis_array(self):
        return np.array(self.basis, dtype=int)

    def _kkt_matrix(self, basis):
        F = np.array(basis, dtype=int)
        k = len(F)
        M = zeros((k + self.m, k + self.m))
        M[:k, :k] = self.D[np.ix_(F, F)]
        M[:k, k:] = self.A[:, F].T
        M[k:, :k] = self.A[:, F]
        return M

    def _factorize(self):
        if self._linear:
            self._Binv = inverse(self.A[:, self._basis_array()])
        else:
            self._Minv = inverse(self._kkt_matrix(self.basis))

    def _update_values(self):
        """Recompute the restricted optimum y and the multipliers lam."""
        F = self._basis_array()
        y = zeros((self.N, ))
        if self._linear:
            y[F] = self._Binv.dot(self.b)
            lam = self._Binv.T.dot(self.c[F])
        else:
            k = len(F)
            sol = self._Minv.dot(np.concatenate((-self.c[F], self.b)))
            y[F] = sol[:k]
            lam = -sol[k:]
        self.y = y
        self.lam = np.array([to_exact(v) for v in lam], dtype=object)

    def nonbasic_variables(self):
        """Indices of the columns that may enter the basis, ascending."""
        return np.flatnonzero(~self._in_basis[:self._nenter])

    def reduced_cost(self, j):
        """Exact reduced cost c_j + D_j y - A_j^T lam of column j."""
        value = self.c[j] - self.A[:, j].dot(self.lam)
        if not self._linear:
            value = value + self.D[j, :].dot(self.y)
        return to_exact(value)

    def is_degenerate(self):
        """True if the last iteration did not move the point."""
        return self._degenerate

    def _run(self):
        while True:
            j = self.pricing_strategy.pricing(self)
            if j is None:
                return OPTIMAL
            if self.max_iterations is not None and self._iterations >= self.max_iterations:
                logger.warning("Iteration limit of %d reached in phase %d", self.max_iterations, self._phase)
                return NOT_SOLVED
            self._iterations += 1
            if not self._enter(j):
                return UNBOUNDED

    def _direction(self, j):
        """
        Change (q, q_lam) of the basic variables and multipliers per unit
        increase of column j, keeping the restricted optimality conditions.
        """
        if self._linear:
            return -self._Binv.dot(self.A[:, j]), None
        F = self._basis_array()
        k = len(F)
        sol = self._Minv.dot(np.concatenate((-self.D[F, j], -self.A[:, j])))
        return sol[:k], -sol[k:]

    def _curvature(self, j, q, q_lam):
        """Second derivative of the objective along the direction of column j."""
        if self._linear:
            return ZERO
        F = self._basis_array()
        return to_exact(self.D[j, F].dot(q) + self.D[j, j] - self.A[:, j].dot(q_lam))

    def _ratio_test(self, q):
        """Position of the blocking basic variable and its step, or (None, None)."""
        step, leave = None, None
        for pos, i in enumerate(self.basis):
            if q[pos] < 0:
                ratio = self.y[i]/-q[pos]
                if step is None or ratio < step or (ratio == step and i < self.basis[leave]):
                    step, leave = ratio, pos
        return leave, step

    def _move(self, j, q, t):
        for pos, i in enumerate(self.basis):
            self.y[i] = self.y[i] + t*q[pos]
        self.y[j] = self.y[j] + t

    def _enter(self, j):
        """
        Increase the non-basic column j until either the objective stops
        decreasing along the direction or a basic variable drops to zero.
        Returns False if neither happens, i.e. the program is unbounded.
        """
        mu = self.reduced_cost(j)
        if mu >= 0:
            raise RuntimeError("Column {} priced with non-negative reduced cost {}.".format(j, mu))
        total = ZERO
        while True:
            q, q_lam = self._direction(j)
            nu = self._curvature(j, q, q_lam)
            if nu < 0:
                raise ValueError("Objective function is not convex along column {}.".format(j))
            leave, step = self._ratio_test(q)
            optimum = -mu/nu if nu > 0 else None

            if step is None and optimum is None:
                ray = zeros((self.N, ))
                for pos, i in enumerate(self.basis):
                    ray[i] = q[pos]
                ray[j] = ONE
                self._ray = ray
                logger.info("Column %d gives an unbounded direction", j)
                return False

            if optimum is not None and (step is None or optimum <= step):
                logger.debug("Iteration %d: column %d enters, step %s to the restricted optimum",
                             self._iterations, j, to_double(optimum))
                self._move(j, q, optimum)
                total += optimum
                self._add_to_basis(j)
                break

            i = self.basis[leave]
            logger.debug("Iteration %d: column %d enters, column %d leaves, step %s",
                         self._iterations, j, i, to_double(step))
            self._move(j, q, step)
            self.y[i] = ZERO
            mu = mu + step*nu
            total += step
            if self._linear:
                pivot_update(self._Binv, -q, leave)
                self._replace_in_basis(leave, j)
                break
            if not self._remove_from_basis(leave):
                self._exchange(leave, j)
                break
            # j stays non-basic; continue along the direction of the smaller basis

        self._degenerate = total == 0
        self._update_values()
        return True

    def _replace_in_basis(self, pos, j):
        self._in_basis[self.basis[pos]] = False
        self.basis[pos] = j
        self._in_basis[j] = True

    def _bordered_inverse(self, j):
        """Inverse of the KKT matrix with column j added after the basic columns."""
        F = self._basis_array()
        u = np.concatenate((self.D[F, j], self.A[:, j]))
        v = np.concatenate((self.D[j, F], self.A[:, j]))
        return insert_update(self._Minv, u, v, self.D[j, j], len(F))

    def _add_to_basis(self, j):
        self._Minv = self._bordered_inverse(j)
        self.basis.append(j)
        self._in_basis[j] = True

    def _remove_from_basis(self, pos):
        """
        Drop the basic variable at pos. Returns False, leaving the basis
        unchanged, if the restricted program of the remaining basis is not
        uniquely solvable.
        """
        try:
            Minv = remove_update(self._Minv, pos)
        except LinAlgError:
            return False
        i = self.basis.pop(pos)
        self._in_basis[i] = False
        self._Minv = Minv
        return True

    def _exchange(self, pos, j):
        """Replace the basic variable at pos by column j."""
        try:
            Minv = remove_update(self._bordered_inverse(j), pos)
        except LinAlgError:
            # M_{F+j} is singular when the curvature along j is zero
            Minv = None
        i = self.basis.pop(pos)
        self._in_basis[i] = False
        self.basis.append(j)
        self._in_basis[j] = True
        self._Minv = inverse(self._kkt_matrix(self.basis)) if Minv is None else Minv

    def _phase_one(self):
        """
        Minimise the sum of the artificial variables. Rows whose slack has a
        +1 coefficient use it as initial basic variable; all other rows get
        an artificial column, which may never re-enter the basis.
        """
        sf = self._sf
        m, N = sf.nrows, sf.ncols
        basis, artificial_rows = [], []
        for row in range(m):
            if sf.unit_columns[row] is None:
                basis.append(N + len(artificial_rows))
                artificial_rows.append(row)
            else:
                basis.append(sf.unit_columns[row])
        na = len(artificial_rows)
        A = zeros((m, N + na))
        A[:, :N] = sf.A
        for t, row in enumerate(artificial_rows):
            A[row, N + t] = ONE
        c = zeros((N + na, ))
        c[N:] = ONE

        self._phase = 1
        logger.info("Phase I with %d artificial variables", na)
        self._setup(A, sf.b, c, None, basis, nenter=N)
        status = self._run()
        if status == NOT_SOLVED:
            self._status = NOT_SOLVED
            return
        if status != OPTIMAL:
            raise RuntimeError("Phase I ended with status {}.".format(STATUS_NAMES[status]))

        infeasibility = to_exact(self.c.dot(self.y))
        if infeasibility > 0:
            logger.info("Phase I optimum %s is positive; the program is infeasible",
                        to_double(infeasibility))
            self._farkas = sf.row_multipliers(self.lam)
            self._status = INFEASIBLE
            return
        self._drive_out_artificials(N)

    def _drive_out_artificials(self, N):
        """
        Pivot basic artificial variables (all at zero) out of the basis. An
        artificial that can not be replaced by a structural column marks a
        redundant row, which is dropped.
        """
        redundant = []
        for pos in range(len(self.basis)):
            if self.basis[pos] < N:
                continue
            row = self._Binv[pos, :].dot(self.A[:, :N])
            for col in range(N):
                if not self._in_basis[col] and row[col] != 0:
                    pivot_update(self._Binv, self._Binv.dot(self.A[:, col]), pos)
                    self._replace_in_basis(pos, col)
                    break
            else:
                redundant.append(pos)
        if redundant and self.tags.has_equalities_only_and_full_rank:
            raise ValueError("Constraint matrix does not have full row rank.")

        drop = set()
        for pos in redundant:
            drop.add(int(np.flatnonzero(self.A[:, self.basis[pos]] != 0)[0]))
        if drop:
            logger.info("Removing %d redundant rows", len(drop))
        self._rows = [row for row in range(self.m) if row not in drop]
        self._phase_one_basis = [self.basis[pos] for pos in range(len(self.basis)) if pos not in redundant]

    def _phase_two(self):
        sf = self._sf
        rows = np.array(self._rows, dtype=int)
        self._phase = 2
        logger.info("Phase II on %d rows", len(rows))
        self._setup(sf.A[rows, :], sf.b[rows], sf.c, sf.D, self._phase_one_basis, nenter=sf.ncols)
        status = self._run()
        self._status = status
        if status == NOT_SOLVED:
            return

        self._point = VariableValues(sf, self.y)
        self._basic = sorted(set(sf.columns[p][0] for p in self.basis if p < sf.nstructural))
        if status == OPTIMAL:
            lam = [ZERO]*sf.nrows
            for t, row in enumerate(self._rows):
                lam[row] = self.lam[t]
            self._multipliers = sf.row_multipliers(lam)
            value = sf.c0 + self.c.dot(self.y)
            if sf.D is not None:
                value = value + self.y.dot(sf.D.dot(self.y))/2
            self._objective = to_exact(value)
            logger.info("Optimal objective value %s", to_double(self._objective))
        else:
            self._ray = [to_exact(v) for v in sf.direction_to_original(self._ray)]

    def _require(self, *statuses):
        status = self.status()
        if status not in statuses:
            raise PreconditionError("Result not available for a program with status {}.".format(
                STATUS_NAMES[status]))

    def status(self):
        """OPTIMAL, INFEASIBLE, UNBOUNDED or NOT_SOLVED; solves on first use."""
        if self._status is None:
            self.solve()
        return self._status

    def is_optimal(self):
        return self.status() == OPTIMAL

    def is_infeasible(self):
        return self.status() == INFEASIBLE

    def is_unbounded(self):
        return self.status() == UNBOUNDED

    def solution(self):
        """Exact optimal objective value."""
        self._require(OPTIMAL)
        return self._objective

    def variable_values(self):
        """Optimal values of the original variables, or the feasible point of an unbounded program."""
        self._require(OPTIMAL, UNBOUNDED)
        return self._point

    def optimality_certificate(self):
        """Row multipliers proving optimality of variable_values()."""
        self._require(OPTIMAL)
        return list(self._multipliers)

    def infeasibility_certificate(self):
        """Farkas multipliers proving infeasibility."""
        self._require(INFEASIBLE)
        return list(self._farkas)

    def unboundedness_certificate(self):
        """Feasible point x and ray w along which the objective decreases without bound."""
        self._require(UNBOUNDED)
        return list(self._point), list(self._ray)

    def basic_variable_indices(self):
        """Original variables that are basic in the final basis."""
        self._require(OPTIMAL, UNBOUNDED)
        return list(self._basic)

    def number_of_iterations(self):
        return self._iterations

    def is_valid(self):
        """
        Check the result with an independent Certifier. A program that was
        not solved is never valid.
        """
        status = self.status()
        certifier = Certifier(self.qp, linear=self.tags.is_linear)
        if status == OPTIMAL:
            valid = certifier.check_optimal(self._point, self._multipliers, self._objective)
        elif status == INFEASIBLE:
            valid = certifier.check_infeasible(self._farkas)
        elif status == UNBOUNDED:
            valid = certifier.check_unbounded(self._point, self._ray)
        else:
            valid = False
        if status != NOT_SOLVED and not valid:
            logger.error("Result failed certification: %s", '; '.join(certifier.errors))
        self.certifier = certifier
        return valid

    def raise_if_invalid(self):
        """Raise ValidityFailure if the result does not certify."""
        if not self.is_valid():
            if self.status() == NOT_SOLVED:
                raise ValidityFailure(["program was not solved"])
            self.certifier.raise_if_invalid()
