import unittest

import numpy as np
import sklearn.metrics

import genetraj.diffusion_map
from genetraj.errors import DegenerateSpectrumError, ParameterError
from genetraj.matrix import SparseMatrix


class TestDiffusionMap(unittest.TestCase):

    def setUp(self):
        self.x = np.random.RandomState(0).rand(50, 2)
        self.distances = sklearn.metrics.pairwise.pairwise_distances(self.x)

    def test_eigenvalues(self):
        embedding = genetraj.diffusion_map.diffusion_map(self.distances, n_components=5, k=5)
        self.assertEqual(embedding.coordinates.shape, (50, 5))
        self.assertEqual(len(embedding.eigenvalues), 5)
        self.assertTrue(np.all(np.diff(np.abs(embedding.eigenvalues)) <= 1e-12))
        self.assertTrue(np.all(np.abs(embedding.eigenvalues) <= 1 + 1e-8))

    def test_deterministic(self):
        a = genetraj.diffusion_map.diffusion_map(self.distances, n_components=5, k=5)
        b = genetraj.diffusion_map.diffusion_map(self.distances, n_components=5, k=5)
        np.testing.assert_array_equal(a.coordinates, b.coordinates)
        np.testing.assert_array_equal(a.eigenvalues, b.eigenvalues)

    def test_sign(self):
        embedding = genetraj.diffusion_map.diffusion_map(self.distances, n_components=5, k=5, t=0)
        c = embedding.coordinates
        largest = c[np.argmax(np.abs(c), axis=0), np.arange(c.shape[1])]
        self.assertTrue(np.all(largest > 0))

    def test_diffusion_time(self):
        t0 = genetraj.diffusion_map.diffusion_map(self.distances, n_components=3, k=5, t=0)
        t2 = genetraj.diffusion_map.diffusion_map(self.distances, n_components=3, k=5, t=2)
        np.testing.assert_allclose(t2.coordinates, t0.coordinates * t0.eigenvalues ** 2)

    def test_negative_eigenvalue(self):
        # two groups far apart inside, close across: the kernel is not positive semi-definite
        group = np.repeat([0, 1], 5)
        distances = np.where(group[:, np.newaxis] == group[np.newaxis, :], 10.0, 0.1)
        np.fill_diagonal(distances, 0)
        embedding = genetraj.diffusion_map.diffusion_map(distances, n_components=2, sigma=1)
        self.assertAlmostEqual(embedding.eigenvalues[0], -0.6639, places=3)
        self.assertAlmostEqual(embedding.eigenvalues[1], 0.1681, places=3)
        # the leading component separates the groups
        self.assertTrue(np.all(np.sign(embedding.coordinates[:5, 0]) != np.sign(embedding.coordinates[5:, 0])))

    def test_line_is_ordered(self):
        # the first component of points on a line follows their position
        position = np.arange(20, dtype=float)
        distances = np.abs(np.subtract.outer(position, position))
        embedding = genetraj.diffusion_map.diffusion_map(distances, n_components=2, k=3)
        self.assertGreater(np.abs(np.corrcoef(position, embedding.coordinates[:, 0])[0, 1]), 0.9)

    def test_fixed_bandwidth(self):
        embedding = genetraj.diffusion_map.diffusion_map(self.distances, n_components=4, sigma=0.3)
        self.assertEqual(embedding.n_components, 4)
        with self.assertRaises(ParameterError):
            genetraj.diffusion_map.diffusion_map(self.distances, n_components=4, sigma=0)

    def test_missing_entries(self):
        position = np.arange(10, dtype=float)
        i, j = np.triu_indices(10, 1)
        keep = (j - i) <= 3
        matrix = SparseMatrix.from_pairs(np.column_stack((i[keep], j[keep])), (j - i)[keep].astype(float), 10)
        embedding = genetraj.diffusion_map.diffusion_map(matrix, n_components=2, k=2)
        self.assertGreater(np.abs(np.corrcoef(position, embedding.coordinates[:, 0])[0, 1]), 0.9)

    def test_to_frame(self):
        embedding = genetraj.diffusion_map.diffusion_map(self.distances, n_components=3, k=5,
                                                         names=['c{}'.format(i) for i in range(50)])
        df = embedding.to_frame()
        self.assertEqual(list(df.columns), ['DM_1', 'DM_2', 'DM_3'])
        self.assertEqual(df.index[0], 'c0')

    def test_degenerate(self):
        with self.assertRaises(DegenerateSpectrumError):
            genetraj.diffusion_map.diffusion_map(np.zeros((10, 10)), n_components=3)

    def test_invalid(self):
        with self.assertRaises(ParameterError):
            genetraj.diffusion_map.diffusion_map(self.distances, n_components=50)
        with self.assertRaises(ParameterError):
            genetraj.diffusion_map.diffusion_map(self.distances, n_components=0)
        asymmetric = self.distances.copy()
        asymmetric[0, 1] += 1
        with self.assertRaises(ParameterError):
            genetraj.diffusion_map.diffusion_map(asymmetric, n_components=3)
        with self.assertRaises(ParameterError):
            genetraj.diffusion_map.diffusion_map(-self.distances, n_components=3)
        with self.assertRaises(ParameterError):
            genetraj.diffusion_map.diffusion_map(self.distances[:, :10], n_components=3)

    def test_cell_diffusion_map(self):
        x = genetraj.diffusion_map.pca(np.random.RandomState(1).rand(60, 20), n_components=5)
        self.assertEqual(x.shape, (60, 5))
        embedding = genetraj.diffusion_map.cell_diffusion_map(x, n_components=4, k=5)
        self.assertEqual(embedding.coordinates.shape, (60, 4))


if __name__ == '__main__':
    unittest.main()
