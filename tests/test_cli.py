import io
import pytest
from pyqp.certify import Certifier
from pyqp.cli import main, build_parser
from test_mps import EXAMPLE

LP = """\
NAME          LP
ROWS
 N  obj
 G  c1
COLUMNS
    x1        obj       1          c1        1
    x2        obj       1          c1        1
RHS
    rhs       c1        2
ENDATA
"""

INFEASIBLE = """\
NAME
ROWS
 N obj
 G c1
 L c2
COLUMNS
 x obj 1 c1 1
 x c2 1
RHS
 rhs c1 1
ENDATA
"""

UNBOUNDED = """\
NAME
ROWS
 N obj
COLUMNS
 x obj -1
ENDATA
"""

NOT_CONVEX = """\
NAME
ROWS
 N obj
COLUMNS
 x obj -1
BOUNDS
 UP bnd x 1
QMATRIX
 x x -2
ENDATA
"""


def _write(tmpdir, text):
    filename = tmpdir.join('problem.mps')
    filename.write(text)
    return str(filename)


def test_optimal(tmpdir, capsys):
    assert main(['0', '--file', _write(tmpdir, LP)]) == 0
    out = capsys.readouterr().out
    assert 'Solution is valid.' in out
    assert 'Objective function value: 2.0' in out
    assert 'Variable values:' in out
    assert '  x1 = ' in out


def test_echo(tmpdir, capsys):
    assert main(['1', '--file', _write(tmpdir, LP)]) == 0
    out = capsys.readouterr().out
    assert out.startswith('NAME LP')


def test_quadratic(tmpdir, capsys):
    assert main(['0', '--file', _write(tmpdir, EXAMPLE), '--pricing', 'full_exact']) == 0
    assert 'Solution is valid.' in capsys.readouterr().out


def test_infeasible(tmpdir, capsys):
    assert main(['0', '--file', _write(tmpdir, INFEASIBLE)]) == 0
    assert 'Problem is infeasible.' in capsys.readouterr().out


def test_unbounded(tmpdir, capsys):
    assert main(['0', '--file', _write(tmpdir, UNBOUNDED), '--standard-form']) == 0
    assert 'Problem is unbounded.' in capsys.readouterr().out


def test_stdin(monkeypatch, capsys):
    monkeypatch.setattr('sys.stdin', io.StringIO(LP))
    assert main(['0', '--linear', '--symmetric']) == 0
    assert 'Objective function value: 2' in capsys.readouterr().out


def test_invalid_input(tmpdir, capsys):
    assert main(['0', '--file', _write(tmpdir, 'ROWS\n N obj\n')]) == 2
    out = capsys.readouterr().out
    assert 'Input is not a valid MPS file.' in out
    assert 'Error: ' in out


def test_missing_file(tmpdir, capsys):
    assert main(['0', '--file', str(tmpdir.join('missing.mps'))]) == 2
    assert 'Input is not a valid MPS file.' in capsys.readouterr().out


def test_parser():
    args = build_parser().parse_args([])
    assert args.verbosity == 1
    assert args.pricing == 'partial_filtered'
    assert not args.full_rank
    with pytest.raises(SystemExit):
        build_parser().parse_args(['--pricing', 'dantzig'])


def test_values_printed_as_doubles(tmpdir, capsys):
    assert main(['0', '--file', _write(tmpdir, EXAMPLE), '--pricing', 'full_exact']) == 0
    out = capsys.readouterr().out
    value = out.split('Objective function value: ')[1].split('\n')[0]
    assert '/' not in value
    float(value)
    for line in out.split('Variable values:\n')[1].strip().split('\n'):
        name, value = line.split(' = ')
        assert '/' not in value
        float(value)


def test_invalid_solution(tmpdir, capsys, monkeypatch):
    monkeypatch.setattr(Certifier, 'check_optimal', lambda self, *args: False)
    assert main(['0', '--file', _write(tmpdir, LP)]) == 1
    out = capsys.readouterr().out
    assert 'Solution is not valid!' in out
    assert 'Objective function value' not in out


def test_not_convex(tmpdir, capsys):
    assert main(['0', '--file', _write(tmpdir, NOT_CONVEX)]) == 2
    out = capsys.readouterr().out
    assert 'Program can not be solved.' in out
    assert 'Error: Objective function is not convex' in out
