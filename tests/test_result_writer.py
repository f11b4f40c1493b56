import unittest

import numpy as np
from scipy import sparse

from harmonicfield.core.errors import InvalidInputError
from harmonicfield.core.result_writer import PARALLEL_MIN_SIZE, solution_to_dense, write_result


class TestWriteResult(unittest.TestCase):
    def test_writes_negated_values_in_place(self):
        solution = sparse.csc_matrix(np.array([[1.5], [0.0], [-2.0], [4.0]]))
        output = np.full(4, 99.0)
        returned = write_result(solution, output)
        self.assertIs(returned, output)
        np.testing.assert_array_equal(output, [-1.5, 0.0, 2.0, -4.0])

    def test_dense_input_is_accepted(self):
        output = np.empty(3)
        write_result(np.array([[1.0], [2.0], [3.0]]), output)
        np.testing.assert_array_equal(output, [-1.0, -2.0, -3.0])
        np.testing.assert_array_equal(solution_to_dense(np.ones((3, 1))), [1.0, 1.0, 1.0])

    def test_threaded_write_matches_serial(self):
        n = 200000
        self.assertGreater(n, PARALLEL_MIN_SIZE)
        rng = np.random.default_rng(11)
        values = rng.normal(size=n)
        values[::7] = 0.0
        solution = sparse.csc_matrix(values.reshape(-1, 1))

        serial = write_result(solution, np.empty(n), thread_count=1)
        threaded = write_result(solution, np.empty(n), thread_count=4)
        np.testing.assert_array_equal(threaded, serial)
        np.testing.assert_array_equal(threaded, -values)

    def test_more_threads_than_useful(self):
        n = PARALLEL_MIN_SIZE + 3
        values = np.arange(n, dtype=np.float64)
        output = write_result(values, np.empty(n), thread_count=256)
        np.testing.assert_array_equal(output, -values)

    def test_float32_output(self):
        solution = sparse.csc_matrix(np.array([[0.25], [-1.0]], dtype=np.float32))
        output = np.zeros(2, dtype=np.float32)
        write_result(solution, output)
        self.assertEqual(output.dtype, np.float32)
        np.testing.assert_array_equal(output, [-0.25, 1.0])

    def test_shape_mismatch_raises(self):
        solution = sparse.csc_matrix(np.ones((3, 1)))
        for output in (np.zeros(4), np.zeros((3, 1))):
            with self.assertRaises(InvalidInputError) as ctx:
                write_result(solution, output)
            self.assertEqual(ctx.exception.stage, "output")


if __name__ == "__main__":
    unittest.main()
