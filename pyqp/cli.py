"""
Command line driver: read a program in MPS format, solve it and print the
result.

Exit codes: 0 if the result certifies, 1 if it does not, 2 if the input
can not be read or the solver rejects the program (e.g. it is not convex).
"""
import argparse
import logging
import sys
from . import OPTIMAL, INFEASIBLE, UNBOUNDED
from .arithmetic import to_double
from .mps import read_mps, to_mps_string
from .pricing import pricing_registry
from .solver import QPSolver, Tags, DEFAULT_PRICING

logger = logging.getLogger(__name__)

LOG_LEVELS = {0: logging.WARNING, 1: logging.INFO}


def build_parser():
    parser = argparse.ArgumentParser(
        prog='pyqp',
        description='Solve a linear or convex quadratic program given in MPS format exactly.')
    parser.add_argument('verbosity', nargs='?', type=int, default=1,
                        help='0 is quiet, 1 echoes the program and reports progress, 2 logs every iteration.')
    parser.add_argument('--file', type=str, default=None, help='MPS file to read; defaults to stdin.')
    parser.add_argument('--pricing', type=str, default=DEFAULT_PRICING, choices=sorted(pricing_registry),
                        help='Pricing strategy.')
    parser.add_argument('--linear', action='store_true', help='Ignore the quadratic part of the objective.')
    parser.add_argument('--symmetric', action='store_true', help='Trust D to be symmetric.')
    parser.add_argument('--full-rank', action='store_true',
                        help='All rows are equalities and the constraint matrix has full row rank.')
    parser.add_argument('--standard-form', action='store_true', help='All variables have bounds 0 <= x < inf.')
    return parser


def configure_logging(verbosity):
    level = LOG_LEVELS.get(verbosity, logging.DEBUG) if verbosity >= 0 else logging.WARNING
    logging.basicConfig(level=level, format='%(levelname)s %(name)s: %(message)s')


def main(argv=None):
    args = build_parser().parse_args(argv)
    configure_logging(args.verbosity)

    if args.file is None:
        qp = read_mps(sys.stdin)
    else:
        try:
            with open(args.file) as fh:
                qp = read_mps(fh)
        except OSError as err:
            print("Input is not a valid MPS file.")
            print("Error: {}".format(err))
            return 2
    if not qp.is_valid():
        print("Input is not a valid MPS file.")
        print("Error: {}".format(qp.error()))
        return 2

    if args.verbosity > 0:
        print(to_mps_string(qp))

    tags = Tags(is_linear=args.linear, is_symmetric=args.symmetric,
                has_equalities_only_and_full_rank=args.full_rank,
                is_in_standard_form=args.standard_form)
    if qp.is_linear() and not tags.is_linear:
        qp.make_zero_D()

    solver = QPSolver(qp, pricing=args.pricing, tags=tags)
    try:
        status = solver.solve()
    except ValueError as err:
        print("Program can not be solved.")
        print("Error: {}".format(err))
        return 2

    if solver.is_valid():
        print("Solution is valid.")
    else:
        print("Solution is not valid!")
        return 1

    if status == OPTIMAL:
        print("Objective function value: {}".format(to_double(solver.solution())))
        print("Variable values:")
        for j, value in enumerate(solver.variable_values()):
            print("  {} = {}".format(qp.name_of_variable(j), to_double(value)))
    elif status == INFEASIBLE:
        print("Problem is infeasible.")
    elif status == UNBOUNDED:
        print("Problem is unbounded.")
    return 0


if __name__ == '__main__':
    sys.exit(main())
