"""
Reader and writer for linear and quadratic programs in free MPS format.

Supported sections: NAME, ROWS, COLUMNS, RHS, RANGES, BOUNDS, QMATRIX,
QUADOBJ, DMATRIX and ENDATA. QMATRIX lists the full matrix Q of the
objective 1/2 x^T Q x, QUADOBJ only its lower triangle and DMATRIX the full
matrix D of the objective x^T D x.

A malformed description does not raise; ``read_mps`` returns a
QuadraticProgram whose ``is_valid()`` is False and whose ``error()`` holds
the reason.
"""
import io
import logging
from . import (NAME, ROWS, COLUMNS, RHS, RANGES, BOUNDS, QUADS, END,
               SMALLER, EQUAL, LARGER)
from .arithmetic import to_exact, is_finite, INFINITY
from .errors import FormatError
from .qp import QuadraticProgram
from .linalg import ZERO

logger = logging.getLogger(__name__)

SECTIONS = {
    'NAME': NAME,
    'ROWS': ROWS,
    'COLUMNS': COLUMNS,
    'RHS': RHS,
    'RANGES': RANGES,
    'BOUNDS': BOUNDS,
    'QMATRIX': QUADS,
    'QUADOBJ': QUADS,
    'DMATRIX': QUADS,
    'ENDATA': END,
}

ROW_TYPES = {'L': SMALLER, 'E': EQUAL, 'G': LARGER}
ROW_CODES = {SMALLER: 'L', EQUAL: 'E', LARGER: 'G'}


def read_mps(source):
    """
    Read a program from a file-like object or a string holding MPS text.
    """
    if hasattr(source, 'read'):
        text = source.read()
    else:
        text = source
    try:
        qp = MPSReader(text.splitlines()).read()
    except FormatError as err:
        logger.warning("Invalid MPS input: %s", err)
        return QuadraticProgram.invalid(err)
    logger.info("Read MPS problem %s with %d rows and %d columns", qp.name, qp.m, qp.n)
    return qp


def load_mps(filename):
    with open(filename) as fh:
        return read_mps(fh)


class MPSReader(object):
    """Parser state for a single MPS description."""
    def __init__(self, lines):
        self.lines = lines
        self.lineno = 0
        self.name = None
        self.objective = None
        self.free_rows = set()
        self.row_index = {}
        self.row_names = []
        self.relations = []
        self.col_index = {}
        self.col_names = []
        self.entries = {}
        self.obj = {}
        self.rhs = {}
        self.ranges = {}
        self.c0 = ZERO
        self.lower = {}
        self.upper = {}
        self.quad = {}
        self.quad_section = None

    def fail(self, message):
        raise FormatError("line {}: {}".format(self.lineno, message))

    def number(self, token):
        try:
            return to_exact(token)
        except (ValueError, ZeroDivisionError):
            self.fail("invalid number {!r}".format(token))

    def column(self, name):
        try:
            return self.col_index[name]
        except KeyError:
            self.fail("unknown column {!r}".format(name))

    def row(self, name):
        if name == self.objective or name in self.free_rows:
            return name
        try:
            return self.row_index[name]
        except KeyError:
            self.fail("unknown row {!r}".format(name))

    def read(self):
        section = None
        for self.lineno, line in enumerate(self.lines, start=1):
            if not line.strip() or line.startswith('*'):
                continue
            tokens = line.split()
            head = tokens[0].upper()
            if not line[0].isspace() and (head in SECTIONS or section is None or head.startswith('OBJ')):
                if head not in SECTIONS:
                    self.fail("unknown or unsupported section {!r}".format(tokens[0]))
                section = SECTIONS[head]
                if section == NAME:
                    self.name = ' '.join(tokens[1:]) or None
                elif section == QUADS:
                    if self.quad_section is not None and self.quad_section != head:
                        self.fail("only one of QMATRIX, QUADOBJ and DMATRIX may be given")
                    self.quad_section = head
                elif section == END:
                    return self.build()
                elif len(tokens) > 1:
                    self.fail("unexpected data after section name {}".format(head))
                continue

            if section == ROWS:
                self.read_row(tokens)
            elif section == COLUMNS:
                self.read_column(tokens)
            elif section == RHS:
                self.read_pairs(tokens, self.rhs, 'RHS')
            elif section == RANGES:
                self.read_pairs(tokens, self.ranges, 'RANGES')
            elif section == BOUNDS:
                self.read_bound(tokens)
            elif section == QUADS:
                self.read_quad(tokens)
            else:
                self.fail("data outside of a section")
        raise FormatError("missing ENDATA")

    def read_row(self, tokens):
        if len(tokens) != 2:
            self.fail("expected row type and name")
        kind, name = tokens[0].upper(), tokens[1]
        if name in self.row_index or name == self.objective or name in self.free_rows:
            self.fail("duplicate row {!r}".format(name))
        if kind == 'N':
            if self.objective is None:
                self.objective = name
            else:
                logger.info("Ignoring additional free row %s", name)
                self.free_rows.add(name)
        elif kind in ROW_TYPES:
            self.row_index[name] = len(self.row_names)
            self.row_names.append(name)
            self.relations.append(ROW_TYPES[kind])
        else:
            self.fail("unknown row type {!r}".format(tokens[0]))

    def read_column(self, tokens):
        if len(tokens) > 1 and tokens[1] == "'MARKER'":
            self.fail("integer variables are not supported")
        if len(tokens) not in (3, 5):
            self.fail("expected column name and one or two (row, value) pairs")
        name = tokens[0]
        if name not in self.col_index:
            self.col_index[name] = len(self.col_names)
            self.col_names.append(name)
        col = self.col_index[name]
        for k in range(1, len(tokens), 2):
            row = self.row(tokens[k])
            value = self.number(tokens[k + 1])
            if row == self.objective:
                target, key = self.obj, col
            elif row in self.free_rows:
                continue
            else:
                target, key = self.entries, (row, col)
            if key in target:
                self.fail("duplicate entry for column {!r} in row {!r}".format(name, tokens[k]))
            target[key] = value

    def read_pairs(self, tokens, target, section):
        # an optional set name precedes the (row, value) pairs
        if len(tokens) in (3, 5):
            tokens = tokens[1:]
        elif len(tokens) not in (2, 4):
            self.fail("malformed {} line".format(section))
        for k in range(0, len(tokens), 2):
            row = self.row(tokens[k])
            value = self.number(tokens[k + 1])
            if row in self.free_rows:
                continue
            if row == self.objective:
                if section == 'RANGES':
                    self.fail("range on the objective row")
                # MPS convention: the objective RHS is the negated constant
                self.c0 = -value
                continue
            if row in target:
                self.fail("duplicate {} entry for row {!r}".format(section, tokens[k]))
            target[row] = value

    def read_bound(self, tokens):
        kind = tokens[0].upper()
        if kind in ('UP', 'LO', 'FX'):
            if len(tokens) == 4:
                tokens = tokens[:1] + tokens[2:]
            if len(tokens) != 3:
                self.fail("malformed {} bound".format(kind))
            col = self.column(tokens[1])
            value = self.number(tokens[2])
            if kind == 'UP':
                if value < 0 and col not in self.lower:
                    logger.warning("Negative upper bound on %s without lower bound; "
                                   "lower bound set to -inf", tokens[1])
                    self.lower[col] = -INFINITY
                self.upper[col] = value
            elif kind == 'LO':
                self.lower[col] = value
            else:
                self.lower[col] = value
                self.upper[col] = value
        elif kind in ('FR', 'MI', 'PL'):
            if len(tokens) == 3:
                tokens = tokens[:1] + tokens[2:]
            if len(tokens) != 2:
                self.fail("malformed {} bound".format(kind))
            col = self.column(tokens[1])
            if kind in ('FR', 'MI'):
                self.lower[col] = -INFINITY
            if kind in ('FR', 'PL'):
                self.upper[col] = INFINITY
        elif kind in ('BV', 'LI', 'UI', 'SC'):
            self.fail("bound type {} is not supported".format(kind))
        else:
            self.fail("unknown bound type {!r}".format(tokens[0]))

    def read_quad(self, tokens):
        if len(tokens) != 3:
            self.fail("expected two column names and a value")
        i = self.column(tokens[0])
        j = self.column(tokens[1])
        value = self.number(tokens[2])
        if self.quad_section == 'QUADOBJ':
            if (i, j) in self.quad or (j, i) in self.quad:
                self.fail("duplicate QUADOBJ entry")
            self.quad[(i, j)] = value
            self.quad[(j, i)] = value
        else:
            if (i, j) in self.quad:
                self.fail("duplicate {} entry".format(self.quad_section))
            if self.quad_section == 'DMATRIX':
                value = 2*value
            self.quad[(i, j)] = value

    def build(self):
        if self.objective is None:
            raise FormatError("no objective (N) row")
        for (i, j), value in self.quad.items():
            if self.quad.get((j, i), ZERO) != value:
                raise FormatError("{} is not symmetric in columns {!r} and {!r}".format(
                    self.quad_section, self.col_names[i], self.col_names[j]))

        m, n = len(self.row_names), len(self.col_names)
        qp = QuadraticProgram()
        for col, name in enumerate(self.col_names):
            qp.add_col([], [], obj=self.obj.get(col, ZERO),
                       lower_bound=self.lower.get(col, ZERO),
                       upper_bound=self.upper.get(col, INFINITY), name=name)
        row_data = [([], []) for _ in range(m)]
        for (row, col), value in sorted(self.entries.items()):
            row_data[row][0].append(col)
            row_data[row][1].append(value)
        for row, name in enumerate(self.row_names):
            cols, values = row_data[row]
            qp.add_row(cols, values, self.relations[row], self.rhs.get(row, ZERO), name=name)
        # each range adds a row with the same coefficients
        for row, width in sorted(self.ranges.items()):
            cols, values = row_data[row]
            rhs = self.rhs.get(row, ZERO)
            relation = self.relations[row]
            name = self.row_names[row] + '_range'
            if relation == LARGER:
                qp.add_row(cols, values, SMALLER, rhs + abs(width), name=name)
            elif relation == SMALLER:
                qp.add_row(cols, values, LARGER, rhs - abs(width), name=name)
            elif width > 0:
                qp.set_relation(row, LARGER)
                qp.add_row(cols, values, SMALLER, rhs + width, name=name)
            elif width < 0:
                qp.set_relation(row, SMALLER)
                qp.add_row(cols, values, LARGER, rhs + width, name=name)
        for (i, j), value in self.quad.items():
            qp.D.set_value(i, j, value)
        qp.set_constant(self.c0)
        qp.name = self.name
        qp.objective_name = self.objective
        return qp


def _format(value):
    """Exact text of a number: integers and finite decimals as such, else p/q."""
    value = to_exact(value)
    if value.denominator == 1:
        return str(value.numerator)
    d, k2, k5 = value.denominator, 0, 0
    while d % 2 == 0:
        d //= 2
        k2 += 1
    while d % 5 == 0:
        d //= 5
        k5 += 1
    if d != 1:
        return str(value)
    k = max(k2, k5)
    digits = str(abs(value.numerator*10**k // value.denominator)).rjust(k + 1, '0')
    text = (digits[:-k] + '.' + digits[-k:]).rstrip('0')
    return ('-' if value < 0 else '') + text


def write_mps(qp, stream):
    """Write qp in free MPS format."""
    objective = getattr(qp, 'objective_name', None) or 'obj'
    names = set(qp.name_of_constraint(i) for i in range(qp.m))
    while objective in names:
        objective += '_'

    stream.write('NAME {}\n'.format(qp.name or 'PYQP'))
    stream.write('ROWS\n')
    stream.write(' N  {}\n'.format(objective))
    for row in range(qp.m):
        stream.write(' {}  {}\n'.format(ROW_CODES[qp.r[row]], qp.name_of_constraint(row)))

    stream.write('COLUMNS\n')
    for col, rows, values, obj, lb, ub in qp.cols:
        name = qp.name_of_variable(col)
        if obj != 0 or not rows:
            stream.write('    {}  {}  {}\n'.format(name, objective, _format(obj)))
        for row, value in zip(rows, values):
            stream.write('    {}  {}  {}\n'.format(name, qp.name_of_constraint(row), _format(value)))

    stream.write('RHS\n')
    if qp.c0 != 0:
        stream.write('    rhs  {}  {}\n'.format(objective, _format(-qp.c0)))
    for row in range(qp.m):
        if qp.b[row] != 0:
            stream.write('    rhs  {}  {}\n'.format(qp.name_of_constraint(row), _format(qp.b[row])))

    stream.write('BOUNDS\n')
    for col in range(qp.n):
        name = qp.name_of_variable(col)
        lb, ub = qp.l[col], qp.u[col]
        if not is_finite(lb) and not is_finite(ub):
            stream.write(' FR bnd  {}\n'.format(name))
            continue
        if is_finite(lb) and is_finite(ub) and lb == ub:
            stream.write(' FX bnd  {}  {}\n'.format(name, _format(lb)))
            continue
        if not is_finite(lb):
            stream.write(' MI bnd  {}\n'.format(name))
        elif lb != 0 or (is_finite(ub) and ub < 0):
            stream.write(' LO bnd  {}  {}\n'.format(name, _format(lb)))
        if is_finite(ub):
            stream.write(' UP bnd  {}  {}\n'.format(name, _format(ub)))

    if not qp.D.is_zero():
        stream.write('QMATRIX\n')
        for (i, j), value in qp.D.items():
            stream.write('    {}  {}  {}\n'.format(
                qp.name_of_variable(i), qp.name_of_variable(j), _format(value)))
    stream.write('ENDATA\n')


def to_mps_string(qp):
    stream = io.StringIO()
    write_mps(qp, stream)
    return stream.getvalue()
