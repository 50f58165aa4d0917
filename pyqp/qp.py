"""
Data model for quadratic programs of the form

    minimize:
    .. math:
        1/2 x^T D x + c^T x + c_0

    subject to:
    .. math:
        A x (<=, =, >=) b
        l <= x <= u

All coefficients are held as exact Fractions.
"""
from fractions import Fraction
import numpy as np
from scipy.sparse import coo_matrix, issparse
from . import SMALLER, EQUAL, LARGER
from .arithmetic import to_exact, to_bound, to_double, is_finite, exact_array, INFINITY
from .linalg import zeros, ZERO, ONE

_RELATIONS = {
    '<=': SMALLER, '<': SMALLER, 'L': SMALLER,
    '=': EQUAL, '==': EQUAL, 'E': EQUAL,
    '>=': LARGER, '>': LARGER, 'G': LARGER,
}

RELATION_SYMBOLS = {SMALLER: '<=', EQUAL: '=', LARGER: '>='}


def to_relation(value):
    """Convert SMALLER/EQUAL/LARGER or one of '<=', '=', '>=', 'L', 'E', 'G'."""
    if isinstance(value, str):
        try:
            return _RELATIONS[value.strip().upper()]
        except KeyError:
            raise ValueError("Unknown row relation {!r}.".format(value))
    if value in (SMALLER, EQUAL, LARGER):
        return int(value)
    raise ValueError("Unknown row relation {!r}.".format(value))


class SparseMatrix(object):
    """
    Sparse matrix of exact entries keyed by (i, j) coordinates.

    Unlike scipy's coo_matrix the shape is tracked explicitly, so a matrix may
    contain empty rows and columns. Zero values are never stored.
    """
    def __init__(self, rows=None, cols=None, data=None, matrix=None, shape=None):
        """
        SparseMatrix can be initialised in three different ways,
        :param rows: array_like of i coordinates
        :param cols: array_like of j coordinates
        :param data: array_like of nonzero elements

        Or with a scipy sparse matrix or a dense 2D array_like
        :param matrix: scipy sparse matrix or array_like

        :param shape: (nrows, ncols); defaults to the smallest shape holding
            all entries
        """
        self._entries = {}
        if matrix is not None:
            if issparse(matrix):
                tmp = matrix.tocoo()
                rows, cols, data = tmp.row, tmp.col, tmp.data
                if shape is None:
                    shape = tmp.shape
            else:
                dense = np.asarray(matrix, dtype=object)
                if dense.ndim != 2:
                    raise ValueError("Dense matrix data must be 2-dimensional.")
                if shape is None:
                    shape = dense.shape
                rows, cols, data = [], [], []
                for (i, j), value in np.ndenumerate(dense):
                    rows.append(i)
                    cols.append(j)
                    data.append(value)
        elif data is not None:
            if not len(rows) == len(cols) == len(data):
                raise ValueError("Arrays rows, cols and data must be the same length.")
        else:
            rows, cols, data = [], [], []

        if shape is None:
            shape = (max(rows) + 1 if len(rows) else 0,
                     max(cols) + 1 if len(cols) else 0)
        self._shape = (int(shape[0]), int(shape[1]))
        for i, j, value in zip(rows, cols, data):
            self.set_value(int(i), int(j), value)

    @property
    def shape(self, ):
        return self._shape

    @property
    def nrows(self, ):
        return self._shape[0]

    @property
    def ncols(self, ):
        return self._shape[1]

    @property
    def nnzeros(self, ):
        return len(self._entries)

    def resize(self, nrows, ncols):
        """Grow the matrix shape. Shrinking is only allowed over empty rows/columns."""
        for (i, j) in self._entries:
            if i >= nrows or j >= ncols:
                raise ValueError("Can not resize matrix; entry ({}, {}) would be lost.".format(i, j))
        self._shape = (nrows, ncols)

    def set_value(self, row, col, value):
        """
        Set an entry of the matrix. The shape grows if (row, col) is outside
        of it. Setting zero removes the entry.
        """
        if row < 0 or col < 0:
            raise ValueError("Coordinates (i,j) must be >= 0")
        value = to_exact(value)
        if row >= self._shape[0] or col >= self._shape[1]:
            self._shape = (max(self._shape[0], row + 1), max(self._shape[1], col + 1))
        if value == 0:
            self._entries.pop((row, col), None)
        else:
            self._entries[(row, col)] = value

    def get_value(self, row, col):
        if not (0 <= row < self._shape[0] and 0 <= col < self._shape[1]):
            raise IndexError("Coordinates ({}, {}) out of range for shape {}.".format(row, col, self._shape))
        return self._entries.get((row, col), ZERO)

    def _del_value(self, row, col):
        """
        Delete an entry from the sparse matrix.
        """
        try:
            del self._entries[(row, col)]
        except KeyError:
            raise ValueError("No entry with coordinates ({}, {}).".format(row, col))

    def clear(self):
        """Remove all entries; the shape is kept."""
        self._entries.clear()

    def add_row(self, cols, value):
        """
        Append a row to the matrix.

        :param cols: iterable of column indices
        :param value: scalar applied to all columns or array_like with the
            same length as cols.
        """
        row = self._shape[0]
        self._shape = (row + 1, self._shape[1])
        for col, v in zip(cols, _broadcast(value, len(cols))):
            self.set_value(row, col, v)
        return row

    def get_row(self, row):
        """
        Get row data from the matrix as (cols, values), ordered by column.
        """
        items = sorted((j, v) for (i, j), v in self._entries.items() if i == row)
        return [j for j, v in items], [v for j, v in items]

    @property
    def rows(self, ):
        """Generator of row data"""
        for row in range(self.nrows):
            cols, value = self.get_row(row)
            yield row, cols, value

    def add_col(self, rows, value):
        """
        Append a column to the matrix.

        :param rows: iterable of row indices
        :param value: scalar applied to all rows or array_like with the same
            length as rows.
        """
        col = self._shape[1]
        self._shape = (self._shape[0], col + 1)
        for row, v in zip(rows, _broadcast(value, len(rows))):
            self.set_value(row, col, v)
        return col

    def get_col(self, col):
        """
        Get column data from the matrix as (rows, values), ordered by row.
        """
        items = sorted((i, v) for (i, j), v in self._entries.items() if j == col)
        return [i for i, v in items], [v for i, v in items]

    @property
    def cols(self, ):
        """Generator of col data"""
        for col in range(self.ncols):
            rows, value = self.get_col(col)
            yield col, rows, value

    def items(self):
        """((i, j), value) pairs ordered by row, then column."""
        return sorted(self._entries.items())

    def is_zero(self):
        return len(self._entries) == 0

    def is_symmetric(self):
        if self.nrows != self.ncols:
            return False
        for (i, j), value in self._entries.items():
            if self._entries.get((j, i), ZERO) != value:
                return False
        return True

    def transpose(self):
        tmp = SparseMatrix(shape=(self.ncols, self.nrows))
        for (i, j), value in self._entries.items():
            tmp._entries[(j, i)] = value
        return tmp

    def copy(self):
        tmp = SparseMatrix(shape=self._shape)
        tmp._entries = dict(self._entries)
        return tmp

    def tocoo(self):
        """Floating point scipy copy, for display and interoperability."""
        items = self.items()
        data = [to_double(v) for (i, j), v in items]
        rows = [i for (i, j), v in items]
        cols = [j for (i, j), v in items]
        return coo_matrix((data, (rows, cols)), shape=self._shape)

    def tocsc(self):
        return self.tocoo().tocsc()

    def todense(self):
        """Exact dense copy as a numpy object array."""
        out = zeros(self._shape)
        for (i, j), value in self._entries.items():
            out[i, j] = value
        return out


def _broadcast(value, n):
    if np.isscalar(value) or isinstance(value, Fraction):
        return [value]*n
    value = list(value)
    if len(value) != n:
        raise ValueError("Inconsistent data array provided.")
    return value


def _as_sparse(matrix, shape=None):
    if matrix is None:
        return SparseMatrix(shape=shape)
    if isinstance(matrix, SparseMatrix):
        tmp = matrix.copy()
    else:
        tmp = SparseMatrix(matrix=matrix)
    if shape is not None and tmp.shape != shape:
        if tmp.nrows > shape[0] or tmp.ncols > shape[1]:
            raise ValueError("Matrix of shape {} does not fit shape {}.".format(tmp.shape, shape))
        tmp.resize(*shape)
    return tmp


class QuadraticProgram(object):
    """
    Container for a convex quadratic (or linear) program.

        minimize:
        .. math:
            1/2 x^T D x + c^T x + c_0

        subject to:
        .. math:
            A x (<=, =, >=) b
            l <= x <= u

    The default relation of a row is EQUAL and the default bounds of a
    variable are 0 <= x < inf.
    """
    def __init__(self, A=None, b=None, c=None, r=None, l=None, u=None, D=None, c0=0,
                 variable_names=None, constraint_names=None):
        """
        :param A: SparseMatrix, scipy.sparse matrix or dense array_like of
            constraint coefficients.
        :param b: right hand sides of the rows
        :param c: objective function coefficients
        :param r: row relations (SMALLER, EQUAL, LARGER or '<=', '=', '>=')
        :param l: variable lower bounds (-inf allowed)
        :param u: variable upper bounds (inf allowed)
        :param D: symmetric positive semidefinite matrix of the quadratic term
        :param c0: constant objective term
        """
        self._error = None
        self.name = None
        self.objective_name = None
        if A is not None:
            if b is None or c is None:
                raise ValueError("If A matrix is provided then b and c must also be provided.")
            self.A = _as_sparse(A)
            m, n = self.A.shape
            # Shape of A may be smaller than b and c if its trailing rows/cols are empty
            m = max(m, len(b))
            n = max(n, len(c))
            self.A.resize(m, n)
            if len(b) != m:
                raise ValueError("Array b must have one entry per row of A.")
            if len(c) != n:
                raise ValueError("Array c must have one entry per column of A.")
            self.b = [to_exact(v) for v in b]
            self.c = [to_exact(v) for v in c]
        else:
            if b is not None or c is not None:
                raise ValueError("Arrays b and c can only be provided together with A.")
            self.A = SparseMatrix()
            self.b = []
            self.c = []
            m, n = 0, 0

        self.r = [EQUAL]*m if r is None else [to_relation(v) for v in r]
        self.l = [ZERO]*n if l is None else [to_bound(v) for v in l]
        self.u = [INFINITY]*n if u is None else [to_bound(v) for v in u]
        if len(self.r) != m:
            raise ValueError("Array r must have one entry per row.")
        if len(self.l) != n or len(self.u) != n:
            raise ValueError("Arrays l and u must have one entry per column.")
        if any(v == INFINITY for v in self.l) or any(v == -INFINITY for v in self.u):
            raise ValueError("Lower bounds can not be +inf and upper bounds can not be -inf.")

        self.D = _as_sparse(D, shape=(n, n))
        self.c0 = to_exact(c0)

        self._variable_names = [None]*n if variable_names is None else list(variable_names)
        self._constraint_names = [None]*m if constraint_names is None else list(constraint_names)
        if len(self._variable_names) != n or len(self._constraint_names) != m:
            raise ValueError("Names must be given for every variable and constraint.")

    @classmethod
    def invalid(cls, message):
        """An empty program flagged as invalid, as produced by a failing loader."""
        qp = cls()
        qp._error = str(message)
        return qp

    def is_valid(self):
        return self._error is None

    def error(self):
        """Description of the format error, or None if the program is valid."""
        return self._error

    @property
    def nrows(self, ):
        return self.A.nrows

    @property
    def ncols(self, ):
        return self.A.ncols

    @property
    def nnzeros(self, ):
        return self.A.nnzeros

    @property
    def m(self,):
        """Number of rows (constraints)"""
        return self.nrows

    @property
    def n(self,):
        """Number of columns (variables)"""
        return self.ncols

    def a(self, row, col):
        return self.A.get_value(row, col)

    def b_value(self, row):
        return self.b[row]

    def c_value(self, col):
        return self.c[col]

    def d(self, i, j):
        return self.D.get_value(i, j)

    def relation(self, row):
        return self.r[row]

    def lower_bound(self, col):
        return self.l[col]

    def upper_bound(self, col):
        return self.u[col]

    def has_finite_lower_bound(self, col):
        return is_finite(self.l[col])

    def has_finite_upper_bound(self, col):
        return is_finite(self.u[col])

    def name_of_variable(self, col):
        name = self._variable_names[col]
        return 'x{}'.format(col) if name is None else name

    def name_of_constraint(self, row):
        name = self._constraint_names[row]
        return 'row{}'.format(row) if name is None else name

    def variable_index(self, name):
        for col in range(self.n):
            if self.name_of_variable(col) == name:
                return col
        raise ValueError("No variable named {!r}.".format(name))

    def constraint_index(self, name):
        for row in range(self.m):
            if self.name_of_constraint(row) == name:
                return row
        raise ValueError("No constraint named {!r}.".format(name))

    def _grow_cols(self, ncols):
        for col in range(self.n, ncols):
            self.c.append(ZERO)
            self.l.append(ZERO)
            self.u.append(INFINITY)
            self._variable_names.append(None)
        self.A.resize(self.m, ncols)
        self.D.resize(ncols, ncols)

    def _grow_rows(self, nrows):
        for row in range(self.m, nrows):
            self.b.append(ZERO)
            self.r.append(EQUAL)
            self._constraint_names.append(None)
        self.A.resize(nrows, self.n)

    def add_row(self, cols, value, relation=EQUAL, bound=0, name=None):
        """
        Add row to the problem.

        Any new columns are initialised with a zero objective coefficient and
        bounds 0 <= x < inf.

        :param cols: iterable of column indices
        :param value: data for the A matrix for the columns
        :param relation: SMALLER, EQUAL or LARGER
        :param bound: right hand side of the row
        """
        relation = to_relation(relation)
        bound = to_exact(bound)
        ncols = max([self.n] + [col + 1 for col in cols])
        self._grow_cols(ncols)
        row = self.A.add_row(cols, value)
        self.b.append(bound)
        self.r.append(relation)
        self._constraint_names.append(name)
        return row

    def get_row(self, row):
        """
        Get row data as (cols, values, relation, bound)

        :param row: row index
        """
        cols, value = self.A.get_row(row)
        return cols, value, self.r[row], self.b[row]

    @property
    def rows(self, ):
        """Generator of row data"""
        for row in range(self.nrows):
            cols, value, relation, bound = self.get_row(row)
            yield row, cols, value, relation, bound

    def add_col(self, rows, value, obj=0, lower_bound=0, upper_bound=INFINITY, name=None):
        """
        Add column to the problem. Any new rows are initialised as the
        equality 0 = 0.

        :param rows: iterable of row indices
        :param value: data for the A matrix for the rows
        :param obj: objective function coefficient
        :param lower_bound: lower bound of the variable (may be -inf)
        :param upper_bound: upper bound of the variable (may be inf)
        """
        nrows = max([self.m] + [row + 1 for row in rows])
        self._grow_rows(nrows)
        col = self.A.add_col(rows, value)
        self.c.append(to_exact(obj))
        self.l.append(ZERO)
        self.u.append(INFINITY)
        self._variable_names.append(name)
        self.D.resize(col + 1, col + 1)
        self.set_col_bounds(col, lower_bound, upper_bound)
        return col

    def get_col(self, col):
        """
        Get column data as (rows, values, obj, lower_bound, upper_bound)

        :param col: column index
        """
        rows, value = self.A.get_col(col)
        return rows, value, self.c[col], self.l[col], self.u[col]

    @property
    def cols(self, ):
        """Generator of column data"""
        for col in range(self.ncols):
            rows, value, obj, lb, ub = self.get_col(col)
            yield col, rows, value, obj, lb, ub

    def set_value(self, row, col, value):
        if row >= self.m or col >= self.n:
            raise ValueError("Can not set a coefficient outside of the constraint matrix.")
        self.A.set_value(row, col, value)

    def set_objective(self, col, obj):
        """
        Set objective function coefficient. Raises an error if col is greater
        than current number of columns
        """
        if col >= self.n:
            raise ValueError("Can not set objective coefficient for column that does not exist.")
        self.c[col] = to_exact(obj)

    def set_d(self, i, j, value):
        """Set D[i, j] and D[j, i]."""
        if i >= self.n or j >= self.n:
            raise ValueError("Can not set quadratic coefficient for column that does not exist.")
        self.D.set_value(i, j, value)
        self.D.set_value(j, i, value)

    def set_bound(self, row, bound):
        """
        Set the right hand side of a row. Raises an error if row is greater
        than current number of rows.
        """
        if row >= self.m:
            raise ValueError("Can not set bounds for row that does not exist.")
        self.b[row] = to_exact(bound)

    def set_relation(self, row, relation):
        if row >= self.m:
            raise ValueError("Can not set relation for row that does not exist.")
        self.r[row] = to_relation(relation)

    def set_col_bounds(self, col, lower_bound=0, upper_bound=INFINITY):
        """
        Set column bounds
        """
        if col >= self.n:
            raise ValueError("Can not set bounds for column that does not exist.")
        lower_bound = to_bound(lower_bound)
        upper_bound = to_bound(upper_bound)
        if lower_bound == INFINITY:
            raise ValueError("Column lower bounds can not be inf.")
        if upper_bound == -INFINITY:
            raise ValueError("Column upper bounds can not be -inf.")
        self.l[col] = lower_bound
        self.u[col] = upper_bound

    def set_constant(self, c0):
        self.c0 = to_exact(c0)

    def is_linear(self):
        return self.D.is_zero()

    def is_symmetric(self):
        return self.D.is_symmetric()

    def is_in_standard_form(self):
        """True if every variable has bounds 0 <= x < inf."""
        return all(v == 0 for v in self.l) and all(v == INFINITY for v in self.u)

    def has_equalities_only(self):
        return all(v == EQUAL for v in self.r)

    def make_zero_D(self):
        """
        Drop the quadratic term. Intended for programs that are found to be
        linear but were not declared as such; must be called before solving.
        """
        self.D.clear()

    def objective_value(self, x):
        """Exact value of the objective function at x."""
        x = [to_exact(v) for v in x]
        if len(x) != self.n:
            raise ValueError("Point must have one entry per column.")
        value = self.c0 + sum((cj*xj for cj, xj in zip(self.c, x)), ZERO)
        quad = sum((v*x[i]*x[j] for (i, j), v in self.D.items()), ZERO)
        return value + quad/2

    def to_standard_form(self, linear=False, symmetric=True, nonnegative=False, equalities=False):
        """
        Return a StandardForm of this program.

        :param linear: ignore D
        :param symmetric: trust D to be symmetric; otherwise (D + D^T)/2 is used
        :param nonnegative: trust all bounds to be 0 <= x < inf
        :param equalities: trust all rows to be equalities
        """
        return StandardForm(self, linear=linear, symmetric=symmetric,
                            nonnegative=nonnegative, equalities=equalities)

    def __str__(self):
        from .mps import to_mps_string
        return to_mps_string(self)


class StandardForm(object):
    """
    Equality form of a QuadraticProgram,

        minimize:
        .. math:
            1/2 y^T D y + c^T y + c_0

        subject to:
        .. math:
            A y = b, b >= 0
            y >= 0

    The variables y are the shifted/mirrored/split original variables
    followed by slack variables. Doubly bounded variables get an extra row
    y + s = u - l. Rows with negative right hand side are negated.
    """
    def __init__(self, qp, linear=False, symmetric=True, nonnegative=False, equalities=False):
        m, n = qp.m, qp.n
        self.m, self.n = m, n

        A0 = qp.A.todense()
        b0 = exact_array(qp.b, shape=(m, ))
        c0 = exact_array(qp.c, shape=(n, ))
        D0 = None
        if not linear and not qp.D.is_zero():
            D0 = qp.D.todense()
            if not symmetric:
                D0 = (D0 + D0.T)/2

        # shift finite lower bounds to zero (x <- x-l); mirror variables with
        # only an upper bound (x <- u-x); split free variables (x = x+ - x-)
        columns = []
        offset = [ZERO]*n
        upper = []
        for k in range(n):
            lb, ub = qp.l[k], qp.u[k]
            if nonnegative:
                columns.append((k, 1))
            elif is_finite(lb):
                offset[k] = lb
                columns.append((k, 1))
                if is_finite(ub):
                    upper.append((len(columns) - 1, ub - lb))
            elif is_finite(ub):
                offset[k] = ub
                columns.append((k, -1))
            else:
                columns.append((k, 1))
                columns.append((k, -1))
        ns = len(columns)
        T = zeros((n, ns))
        for p, (k, s) in enumerate(columns):
            T[k, p] = Fraction(s)
        o = exact_array(offset, shape=(n, ))

        slack_rows = [] if equalities else [i for i in range(m) if qp.r[i] != EQUAL]
        nsl, nub = len(slack_rows), len(upper)
        mt, N = m + nub, ns + nsl + nub

        A = zeros((mt, N))
        b = zeros((mt, ))
        A[:m, :ns] = A0.dot(T)
        b[:m] = b0 - A0.dot(o)
        self.slack_of_row = [None]*m
        for t, i in enumerate(slack_rows):
            A[i, ns + t] = ONE if qp.r[i] == SMALLER else -ONE
            self.slack_of_row[i] = ns + t
        slack_cols = [None]*mt
        for t, (p, width) in enumerate(upper):
            A[m + t, p] = ONE
            A[m + t, ns + nsl + t] = ONE
            b[m + t] = width
            slack_cols[m + t] = ns + nsl + t
        for i in range(m):
            slack_cols[i] = self.slack_of_row[i]

        self.row_sign = [1]*mt
        self.unit_columns = [None]*mt
        for row in range(mt):
            if b[row] < 0:
                A[row, :] = -A[row, :]
                b[row] = -b[row]
                self.row_sign[row] = -1
            q = slack_cols[row]
            if q is not None and A[row, q] == ONE:
                self.unit_columns[row] = q

        c = zeros((N, ))
        if D0 is not None:
            c[:ns] = T.T.dot(D0.dot(o) + c0)
            D = zeros((N, N))
            D[:ns, :ns] = T.T.dot(D0).dot(T)
            constant = qp.c0 + c0.dot(o) + o.dot(D0.dot(o))/2
        else:
            c[:ns] = T.T.dot(c0)
            D = None
            constant = qp.c0 + c0.dot(o)

        self.A, self.b, self.c, self.D = A, b, c, D
        self.c0 = to_exact(constant)
        self.columns = columns
        self.offset = offset
        self.nstructural = ns

    @property
    def nrows(self, ):
        return self.A.shape[0]

    @property
    def ncols(self, ):
        return self.A.shape[1]

    def direction_to_original(self, d):
        """Map a direction of the standard form back to the original variables."""
        w = [ZERO]*self.n
        for p, (k, s) in enumerate(self.columns):
            w[k] = w[k] + s*d[p]
        return w

    def row_multipliers(self, lam):
        """Multipliers of the original rows from those of the standard form rows."""
        return [self.row_sign[i]*to_exact(lam[i]) for i in range(self.m)]
