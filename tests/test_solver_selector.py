import unittest

from harmonicfield.core.errors import InvalidInputError
from harmonicfield.core.solver_selector import (
    NNZ_THRESHOLD,
    SolverType,
    SolvingMethod,
    estimate_nonzeros,
    find_best_solver,
    resolve_solving_method,
)


class TestSolverSelector(unittest.TestCase):
    def test_threshold_boundary(self):
        self.assertEqual(NNZ_THRESHOLD, 500000)
        # 2E + V == threshold stays direct
        self.assertEqual(estimate_nonzeros(100000, 200000), 500000)
        self.assertIs(find_best_solver(100000, 200000), SolverType.CHOLESKY)
        self.assertIs(find_best_solver(100001, 200000), SolverType.ITERATIVE)
        self.assertIs(find_best_solver(10, 20), SolverType.CHOLESKY)

    def test_auto_uses_heuristic(self):
        self.assertIs(resolve_solving_method(SolvingMethod.AUTO, 1000, 3000), SolverType.CHOLESKY)
        self.assertIs(resolve_solving_method(SolvingMethod.AUTO, 200000, 600000), SolverType.ITERATIVE)

    def test_explicit_modes_pass_through_regardless_of_size(self):
        for n_v, n_e in [(3, 3), (10**6, 3 * 10**6)]:
            self.assertIs(resolve_solving_method(SolvingMethod.CHOLESKY, n_v, n_e), SolverType.CHOLESKY)
            self.assertIs(resolve_solving_method(SolvingMethod.ITERATIVE, n_v, n_e), SolverType.ITERATIVE)

    def test_custom_threshold(self):
        self.assertIs(resolve_solving_method("auto", 10, 20, threshold=49), SolverType.ITERATIVE)
        self.assertIs(resolve_solving_method("auto", 10, 20, threshold=50), SolverType.CHOLESKY)

    def test_parse(self):
        self.assertIs(SolvingMethod.parse(" Cholesky "), SolvingMethod.CHOLESKY)
        self.assertIs(SolvingMethod.parse("ITERATIVE"), SolvingMethod.ITERATIVE)
        self.assertIs(SolvingMethod.parse(SolverType.ITERATIVE), SolvingMethod.ITERATIVE)
        self.assertIs(SolvingMethod.parse(SolvingMethod.AUTO), SolvingMethod.AUTO)
        with self.assertRaises(InvalidInputError):
            SolvingMethod.parse("lu")


if __name__ == "__main__":
    unittest.main()
