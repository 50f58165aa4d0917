from fractions import Fraction
import io
import numpy as np
import pytest
from pyqp import SMALLER, EQUAL, LARGER, OPTIMAL
from pyqp.arithmetic import INFINITY
from pyqp.mps import read_mps, write_mps, to_mps_string, load_mps
from pyqp.solver import QPSolver

EXAMPLE = """\
* a small quadratic program
NAME          QPEX
ROWS
 N  cost
 G  c1
 L  c2
 E  c3
COLUMNS
    x1        cost      1.5        c1        1
    x1        c2        1
    x2        cost      -2         c1        1
    x2        c3        1/2
    x3        c2        1          c3        1
RHS
    rhs       c1        2          c2        10
    rhs       c3        1          cost      -4
RANGES
    rng       c2        4
BOUNDS
 UP bnd       x1        4
 MI bnd       x2
 UP bnd       x2        3
 FR bnd       x3
QMATRIX
    x1        x1        2
    x1        x2        1
    x2        x1        1
    x2        x2        2
ENDATA
"""


def test_read():
    qp = read_mps(EXAMPLE)

    assert qp.is_valid()
    assert qp.name == 'QPEX'
    assert qp.objective_name == 'cost'
    assert qp.m == 4
    assert qp.n == 3
    assert qp.c == [Fraction(3, 2), -2, 0]
    assert qp.c0 == 4
    assert qp.r == [LARGER, SMALLER, EQUAL, LARGER]
    assert qp.b == [2, 10, 1, 6]
    assert qp.a(2, 1) == Fraction(1, 2)
    assert qp.name_of_constraint(3) == 'c2_range'
    assert qp.get_row(3)[0] == [0, 2]
    assert qp.l == [0, -INFINITY, -INFINITY]
    assert qp.u == [4, 3, INFINITY]
    assert qp.d(0, 1) == 1
    assert qp.d(1, 1) == 2
    assert qp.variable_index('x3') == 2


def test_read_file_object():
    qp = read_mps(io.StringIO(EXAMPLE))
    assert qp.is_valid()
    assert qp.n == 3


def test_load(tmpdir):
    filename = tmpdir.join('example.mps')
    filename.write(EXAMPLE)
    qp = load_mps(str(filename))
    assert qp.is_valid()
    assert qp.name == 'QPEX'


def test_round_trip():
    qp = read_mps(EXAMPLE)
    text = to_mps_string(qp)
    again = read_mps(text)

    assert again.is_valid(), again.error()
    assert again.m == qp.m
    assert again.n == qp.n
    assert again.c == qp.c
    assert again.c0 == qp.c0
    assert again.b == qp.b
    assert again.r == qp.r
    assert again.l == qp.l
    assert again.u == qp.u
    assert again.A.items() == qp.A.items()
    assert again.D.items() == qp.D.items()
    assert str(qp) == text


def test_round_trip_solves_the_same():
    qp = read_mps(EXAMPLE)
    again = read_mps(to_mps_string(qp))
    first = QPSolver(qp)
    second = QPSolver(again)
    assert first.status() == second.status()
    if first.status() == OPTIMAL:
        assert first.solution() == second.solution()


def test_quadobj_and_dmatrix():
    text = """\
NAME
ROWS
 N obj
 E r
COLUMNS
 x obj 1 r 1
 y r 1
RHS
 rhs r 1
{}
 x x 2
 y x 1
ENDATA
"""
    qp = read_mps(text.format('QUADOBJ'))
    assert qp.is_valid()
    assert qp.d(0, 1) == 1
    assert qp.d(1, 0) == 1
    assert qp.d(1, 1) == 0

    qp = read_mps(text.format('DMATRIX').replace(' y x 1\n', ' y x 1\n x y 1\n'))
    assert qp.is_valid()
    assert qp.d(0, 0) == 4
    assert qp.d(0, 1) == 2


def test_bounds():
    text = """\
NAME bounds
ROWS
 N obj
COLUMNS
 a obj 1
 b obj 1
 c obj 1
 d obj 1
BOUNDS
 UP bnd a -1
 FX bnd b 2.5
 LO bnd c -3
 PL bnd c
 MI bnd d
ENDATA
"""
    qp = read_mps(text)
    assert qp.is_valid()
    assert qp.m == 0
    assert qp.l == [-INFINITY, Fraction(5, 2), -3, -INFINITY]
    assert qp.u == [-1, Fraction(5, 2), INFINITY, INFINITY]


def test_negative_range_on_equality():
    text = """\
NAME
ROWS
 N obj
 E r
COLUMNS
 x r 1
RHS
 rhs r 5
RANGES
 rng r -2
ENDATA
"""
    qp = read_mps(text)
    assert qp.r == [SMALLER, LARGER]
    assert qp.b == [5, 3]


@pytest.mark.parametrize('text, message', [
    ("NAME\nROWS\n N obj\nCOLUMNS\n x obj 1\n", 'missing ENDATA'),
    ("NAME\nROWS\n G r\nENDATA\n", 'no objective'),
    ("NAME\nROWS\n N obj\n X r\nENDATA\n", 'unknown row type'),
    ("NAME\nROWS\n N obj\nCOLUMNS\n x r 1\nENDATA\n", 'unknown row'),
    ("NAME\nROWS\n N obj\nCOLUMNS\n x obj abc\nENDATA\n", 'invalid number'),
    ("NAME\nROWS\n N obj\nCOLUMNS\n x obj 1\nBOUNDS\n BV bnd x\nENDATA\n", 'not supported'),
    ("NAME\nROWS\n N obj\nCOLUMNS\n M 'MARKER' 'INTORG'\nENDATA\n", 'integer'),
    ("NAME\nOBJSENSE\n MAX\nROWS\n N obj\nENDATA\n", 'unsupported section'),
    ("NAME\nROWS\n N obj\nCOLUMNS\n x obj 1\nQMATRIX\n x x 1\n x y 1\nENDATA\n", 'unknown column'),
    ("NAME\nROWS\n N obj\nCOLUMNS\n x obj 1\n y obj 1\nQMATRIX\n x y 1\nENDATA\n", 'not symmetric'),
    ("garbage\n", 'unsupported section'),
])
def test_invalid(text, message):
    qp = read_mps(text)

    assert not qp.is_valid()
    assert message in qp.error()


def test_write_free_and_fixed():
    from pyqp import QuadraticProgram
    qp = QuadraticProgram([[1, 1]], [1], ['1/3', 0], l=[-np.inf, 2], u=[np.inf, 2])
    stream = io.StringIO()
    write_mps(qp, stream)
    text = stream.getvalue()

    assert ' FR bnd  x0\n' in text
    assert ' FX bnd  x1  2\n' in text
    assert '1/3' in text
    again = read_mps(text)
    assert again.c == [Fraction(1, 3), 0]
