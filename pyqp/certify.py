"""
Independent verification of solver results against the original program.

The checks only use the data of a QuadraticProgram and the claimed
certificates, never the state of the solver, and are carried out in exact
arithmetic. Multipliers follow the convention

    .. math:
        L(x, \\lambda) = f(x) - \\lambda^T (A x - b)

so that rows with relation <= have multipliers <= 0 and rows with
relation >= have multipliers >= 0.
"""
import logging
from . import SMALLER, EQUAL, LARGER
from .arithmetic import to_exact, is_finite
from .errors import ValidityFailure
from .linalg import ZERO

logger = logging.getLogger(__name__)


class Certifier(object):
    """
    Collects the violations found by the ``check_*`` methods in ``errors``.

    :param qp: the original QuadraticProgram
    :param linear: ignore the quadratic term, as the solver does for
        programs tagged linear.
    """
    def __init__(self, qp, linear=False):
        self.qp = qp
        self.linear = linear
        self.errors = []
        self._rows = [(cols, values) for row, cols, values in qp.A.rows]
        self._cols = [(rows, values) for col, rows, values in qp.A.cols]

    def _fail(self, message):
        logger.debug("Certificate check failed: %s", message)
        self.errors.append(message)
        return False

    def _vector(self, values, size, what):
        values = [to_exact(v) for v in values]
        if len(values) != size:
            raise ValueError("{} must have {} entries, got {}.".format(what, size, len(values)))
        return values

    def activities(self, x):
        """Row activities A x."""
        return [sum((v*x[j] for j, v in zip(cols, vals)), ZERO) for cols, vals in self._rows]

    def _transpose_product(self, lam):
        """A^T lambda."""
        return [sum((v*lam[i] for i, v in zip(rows, vals)), ZERO) for rows, vals in self._cols]

    def _quadratic_product(self, x):
        """(D + D^T) x / 2"""
        out = [ZERO]*self.qp.n
        if self.linear:
            return out
        for (i, j), v in self.qp.D.items():
            out[i] += v*x[j]/2
            out[j] += v*x[i]/2
        return out

    def objective_value(self, x):
        value = self.qp.c0 + sum((c*v for c, v in zip(self.qp.c, x)), ZERO)
        if not self.linear:
            value += sum((v*x[i]*x[j] for (i, j), v in self.qp.D.items()), ZERO)/2
        return value

    def reduced_gradient(self, x, lam):
        """(D + D^T) x / 2 + c - A^T lambda"""
        Dx = self._quadratic_product(x)
        ATl = self._transpose_product(lam)
        return [d + c - a for d, c, a in zip(Dx, self.qp.c, ATl)]

    def primal_feasible(self, x):
        qp = self.qp
        x = self._vector(x, qp.n, "Point")
        ok = True
        for i, activity in enumerate(self.activities(x)):
            rel, rhs = qp.r[i], qp.b[i]
            if (rel == SMALLER and activity > rhs) or (rel == LARGER and activity < rhs) or \
                    (rel == EQUAL and activity != rhs):
                ok = self._fail("row {} violated: {} {} {}".format(
                    qp.name_of_constraint(i), activity, {SMALLER: '<=', EQUAL: '=', LARGER: '>='}[rel], rhs))
        for j in range(qp.n):
            if x[j] < qp.l[j] or x[j] > qp.u[j]:
                ok = self._fail("variable {} = {} outside [{}, {}]".format(
                    qp.name_of_variable(j), x[j], qp.l[j], qp.u[j]))
        return ok

    def _multiplier_signs(self, lam):
        ok = True
        for i, v in enumerate(lam):
            rel = self.qp.r[i]
            if (rel == SMALLER and v > 0) or (rel == LARGER and v < 0):
                ok = self._fail("multiplier of row {} has wrong sign: {}".format(
                    self.qp.name_of_constraint(i), v))
        return ok

    def dual_feasible(self, x, lam):
        """
        Sign conditions on the multipliers and on the reduced gradient of
        variables sitting at one of their bounds.
        """
        qp = self.qp
        x = self._vector(x, qp.n, "Point")
        lam = self._vector(lam, qp.m, "Multipliers")
        ok = self._multiplier_signs(lam)
        for j, r in enumerate(self.reduced_gradient(x, lam)):
            at_lower = x[j] == qp.l[j]
            at_upper = x[j] == qp.u[j]
            if at_lower and not at_upper and r < 0:
                ok = self._fail("variable {} at lower bound with reduced gradient {}".format(
                    qp.name_of_variable(j), r))
            elif at_upper and not at_lower and r > 0:
                ok = self._fail("variable {} at upper bound with reduced gradient {}".format(
                    qp.name_of_variable(j), r))
        return ok

    def complementary_slackness(self, x, lam):
        qp = self.qp
        x = self._vector(x, qp.n, "Point")
        lam = self._vector(lam, qp.m, "Multipliers")
        ok = True
        for i, activity in enumerate(self.activities(x)):
            if lam[i] != 0 and activity != qp.b[i]:
                ok = self._fail("row {} is not active but has multiplier {}".format(
                    qp.name_of_constraint(i), lam[i]))
        for j, r in enumerate(self.reduced_gradient(x, lam)):
            if r != 0 and x[j] != qp.l[j] and x[j] != qp.u[j]:
                ok = self._fail("variable {} is strictly between its bounds with reduced gradient {}".format(
                    qp.name_of_variable(j), r))
        return ok

    def check_optimal(self, x, lam, objective=None):
        """
        Verify the KKT conditions of x with multipliers lam and, if given,
        that objective is the exact objective value at x.
        """
        results = [self.primal_feasible(x), self.dual_feasible(x, lam),
                   self.complementary_slackness(x, lam)]
        if objective is not None:
            value = self.objective_value(self._vector(x, self.qp.n, "Point"))
            if to_exact(objective) != value:
                results.append(self._fail("objective value {} differs from {}".format(objective, value)))
        return all(results)

    def check_infeasible(self, lam):
        """
        Verify a Farkas proof of infeasibility: lam has the sign pattern of
        the rows and

            .. math:
                \\max_{l \\le x \\le u} (A^T \\lambda)^T x < \\lambda^T b

        An empty box (l_j > u_j for some j) is a proof in itself.
        """
        qp = self.qp
        for j in range(qp.n):
            if qp.l[j] > qp.u[j]:
                return True
        lam = self._vector(lam, qp.m, "Farkas multipliers")
        ok = self._multiplier_signs(lam)
        bound = ZERO
        for j, g in enumerate(self._transpose_product(lam)):
            if g == 0:
                continue
            limit = qp.u[j] if g > 0 else qp.l[j]
            if not is_finite(limit):
                return self._fail("Farkas multipliers are unbounded over the range of {}".format(
                    qp.name_of_variable(j)))
            bound += g*limit
        rhs = sum((v*b for v, b in zip(lam, qp.b)), ZERO)
        if not bound < rhs:
            ok = self._fail("Farkas inequality does not hold: {} >= {}".format(bound, rhs))
        return ok

    def check_unbounded(self, x, w):
        """
        Verify that x is feasible and w is a ray along which the objective
        decreases without bound: A w satisfies the homogeneous row
        relations, w lies in the recession cone of the bounds, D w = 0 and
        c^T w < 0.
        """
        qp = self.qp
        ok = self.primal_feasible(x)
        w = self._vector(w, qp.n, "Ray")
        for i, activity in enumerate(self.activities(w)):
            rel = qp.r[i]
            if (rel == SMALLER and activity > 0) or (rel == LARGER and activity < 0) or \
                    (rel == EQUAL and activity != 0):
                ok = self._fail("ray leaves row {}".format(qp.name_of_constraint(i)))
        for j in range(qp.n):
            if (is_finite(qp.l[j]) and w[j] < 0) or (is_finite(qp.u[j]) and w[j] > 0):
                ok = self._fail("ray leaves the bounds of {}".format(qp.name_of_variable(j)))
        if any(v != 0 for v in self._quadratic_product(w)):
            ok = self._fail("ray is not in the null space of D")
        slope = sum((c*v for c, v in zip(qp.c, w)), ZERO)
        if not slope < 0:
            ok = self._fail("objective does not decrease along the ray: c^T w = {}".format(slope))
        return ok

    def is_valid(self):
        return len(self.errors) == 0

    def raise_if_invalid(self):
        if self.errors:
            raise ValidityFailure(self.errors)
