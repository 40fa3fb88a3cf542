import unittest

import numpy as np
import scipy.sparse

from genetraj.errors import ParameterError
from genetraj.matrix import DenseMatrix, SparseMatrix, as_matrix, check_distance_matrix


class TestMatrix(unittest.TestCase):

    def test_dense_read_only(self):
        m = DenseMatrix([[0, 1], [1, 0]])
        with self.assertRaises(ValueError):
            m.values[0, 1] = 2
        d = m.to_dense()
        d[0, 1] = 2
        self.assertEqual(m.get(0, 1), 1)

    def test_dense_missing(self):
        m = DenseMatrix([[0, np.nan], [np.nan, 0]])
        self.assertTrue(np.isnan(m.get(0, 1)))
        self.assertEqual(m.get(0, 1, missing=np.inf), np.inf)
        np.testing.assert_array_equal(m.computed_mask(), np.eye(2, dtype=bool))

    def test_sparse_not_computed_vs_zero(self):
        m = SparseMatrix([0, 1], [1, 0], [0.0, 0.0], (3, 3))
        self.assertEqual(m.get(0, 1), 0)
        self.assertTrue(np.isnan(m.get(0, 2)))
        self.assertEqual(m.nnz, 2)

    def test_sparse_duplicates_keep_last(self):
        m = SparseMatrix([0, 0], [1, 1], [1.0, 2.0], (2, 2))
        self.assertEqual(m.get(0, 1), 2)
        self.assertEqual(m.nnz, 1)

    def test_from_pairs(self):
        m = SparseMatrix.from_pairs([[0, 2], [1, 2]], [3.0, 4.0], 4)
        self.assertTrue(m.is_symmetric())
        self.assertEqual(m.get(2, 0), 3)
        self.assertEqual(m.get(3, 3), 0)
        self.assertTrue(np.isnan(m.get(0, 1)))
        np.testing.assert_array_equal(m.row(2, missing=-1), [3, 4, 0, -1])
        np.testing.assert_array_equal(m.submatrix([0, 2], missing=np.inf), [[0, 3], [3, 0]])

    def test_sparse_asymmetric(self):
        self.assertFalse(SparseMatrix([0], [1], [1.0], (2, 2)).is_symmetric())
        self.assertTrue(SparseMatrix([], [], [], (2, 2)).is_symmetric())

    def test_as_matrix(self):
        self.assertEqual(as_matrix(np.zeros((2, 2))).kind, 'dense')
        m = as_matrix(scipy.sparse.csr_matrix(np.array([[0, 1], [1, 0]], dtype=float)))
        self.assertEqual(m.kind, 'sparse')
        self.assertEqual(m.get(0, 1), 1)

    def test_check_distance_matrix(self):
        check_distance_matrix(DenseMatrix([[0, 1], [1, 0]]))
        with self.assertRaises(ParameterError):
            check_distance_matrix(DenseMatrix([[0, 1], [2, 0]]))
        with self.assertRaises(ParameterError):
            check_distance_matrix(DenseMatrix([[0, -1], [-1, 0]]))
        with self.assertRaises(ParameterError):
            check_distance_matrix(SparseMatrix([0], [1], [1.0], (2, 2)))


if __name__ == '__main__':
    unittest.main()
