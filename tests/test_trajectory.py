import unittest

import numpy as np

import genetraj.trajectory
from genetraj.diffusion_map import DiffusionEmbedding
from genetraj.errors import ParameterError
from genetraj.matrix import SparseMatrix


def line_genes(n):
    position = np.arange(n, dtype=float)
    embedding = np.column_stack((position, np.zeros(n)))
    distances = np.abs(np.subtract.outer(position, position))
    return embedding, distances


class TestTrajectory(unittest.TestCase):

    def test_every_gene_labeled(self):
        embedding, distances = line_genes(30)
        result = genetraj.trajectory.extract_gene_trajectories(embedding, distances, 3, [3, 3, 3], k=2, dims=2)
        self.assertEqual(len(result.labels), 30)
        allowed = set(result.names) | {genetraj.trajectory.UNSELECTED}
        self.assertTrue(set(result.labels) <= allowed)
        self.assertEqual(result.names, ['Trajectory-1', 'Trajectory-2', 'Trajectory-3'])

    def test_trajectories_disjoint(self):
        embedding, distances = line_genes(30)
        result = genetraj.trajectory.extract_gene_trajectories(embedding, distances, 3, [3, 3, 3], k=2, dims=2)
        seen = set()
        for trajectory in result.trajectories:
            genes = set(trajectory.genes)
            self.assertEqual(len(genes & seen), 0)
            seen |= genes
            self.assertIn(trajectory.terminus, genes)
            self.assertEqual(trajectory.genes[0], trajectory.terminus)
            self.assertEqual(trajectory.pseudo_order[0], 1)
            np.testing.assert_array_equal(np.diff(trajectory.pseudo_order) > 0, True)

    def test_termini(self):
        embedding, distances = line_genes(30)
        result = genetraj.trajectory.extract_gene_trajectories(embedding, distances, 2, [3, 3], k=2, dims=1)
        # both ends are equally far from the center; the lower index comes first
        self.assertEqual(result.trajectories[0].terminus, 0)
        self.assertEqual(result.trajectories[1].terminus, 29)
        self.assertEqual(result.ordered_genes('Trajectory-1')[0], '0')

    def test_walk_order(self):
        embedding, distances = line_genes(30)
        result = genetraj.trajectory.extract_gene_trajectories(embedding, distances, 1, [4], k=2, dims=1)
        genes = result.trajectory('Trajectory-1').genes
        # genes reached earlier by the walk are closer to the terminus
        self.assertEqual(list(genes), sorted(genes))

    def test_zero_steps(self):
        embedding, distances = line_genes(10)
        result = genetraj.trajectory.extract_gene_trajectories(embedding, distances, 1, [0], k=2, dims=1)
        self.assertEqual(result.trajectories[0].genes, (0,))
        self.assertEqual(list(result.labels).count(genetraj.trajectory.UNSELECTED), 9)

    def test_deterministic(self):
        embedding, distances = line_genes(25)
        a = genetraj.trajectory.extract_gene_trajectories(embedding, distances, 3, [4, 7, 7], k=3, dims=2)
        b = genetraj.trajectory.extract_gene_trajectories(embedding, distances, 3, [4, 7, 7], k=3, dims=2)
        np.testing.assert_array_equal(a.labels, b.labels)
        self.assertEqual(a.trajectories, b.trajectories)

    def test_k_reduced(self):
        embedding, distances = line_genes(3)
        result = genetraj.trajectory.extract_gene_trajectories(embedding, distances, 1, [2], k=10, dims=1)
        self.assertEqual(result.trajectories[0].k, 2)
        self.assertEqual(len(result.warnings), 1)

    def test_genes_exhausted(self):
        embedding, distances = line_genes(3)
        result = genetraj.trajectory.extract_gene_trajectories(embedding, distances, 5, [10] * 5, k=2, dims=1)
        self.assertLess(len(result.trajectories), 5)
        self.assertNotIn(genetraj.trajectory.UNSELECTED, list(result.labels))

    def test_state_not_modified(self):
        embedding, distances = line_genes(10)
        state = genetraj.trajectory.ExtractionState(tuple(range(10)), (), ())
        new_state = genetraj.trajectory.extract_step(state, 2, embedding[:, :1], SparseMatrix.from_pairs(
            np.column_stack(np.triu_indices(10, 1)), distances[np.triu_indices(10, 1)], 10), k=2)
        self.assertEqual(state.available, tuple(range(10)))
        self.assertEqual(len(state.trajectories), 0)
        self.assertEqual(len(new_state.trajectories), 1)
        self.assertEqual(len(new_state.available) + len(new_state.trajectories[0].genes), 10)

    def test_missing_distances(self):
        # only neighboring genes have computed distances
        n = 12
        position = np.arange(n, dtype=float)
        pairs = np.column_stack((np.arange(n - 1), np.arange(1, n)))
        matrix = SparseMatrix.from_pairs(pairs, np.ones(n - 1), n)
        embedding = np.column_stack((position, np.zeros(n)))
        result = genetraj.trajectory.extract_gene_trajectories(embedding, matrix, 1, [2], k=2, dims=1, quantile=0)
        self.assertEqual(set(result.trajectories[0].genes), {0, 1, 2})

    def test_embedding_names(self):
        embedding, distances = line_genes(8)
        names = ['g{}'.format(i) for i in range(8)]
        dm = DiffusionEmbedding(embedding, np.array([1.0, 0.5]), names)
        result = genetraj.trajectory.extract_gene_trajectories(dm, distances, 1, [1], k=1, dims=1)
        df = result.to_frame()
        self.assertEqual(list(df.index), names)
        self.assertEqual(list(df.columns), ['selected', 'Pseudoorder-1'])
        self.assertEqual(df.loc['g0', 'Pseudoorder-1'], 1)
        self.assertTrue(np.isnan(df.loc['g7', 'Pseudoorder-1']))

    def test_invalid(self):
        embedding, distances = line_genes(10)
        extract = genetraj.trajectory.extract_gene_trajectories
        with self.assertRaises(ParameterError):
            extract(embedding, distances, 0, [], dims=1)
        with self.assertRaises(ParameterError):
            extract(embedding, distances, 3, [4, 7], dims=1)
        with self.assertRaises(ParameterError):
            extract(embedding, distances, 1, [-1], dims=1)
        with self.assertRaises(ParameterError):
            extract(embedding, distances, 1, [3], dims=3)
        with self.assertRaises(ParameterError):
            extract(embedding, distances, 1, [3], dims=1, quantile=1)
        with self.assertRaises(ParameterError):
            extract(embedding, distances, 1, [3], k=0, dims=1)
        with self.assertRaises(ParameterError):
            extract(embedding, distances[:5, :5], 1, [3], dims=1)


if __name__ == '__main__':
    unittest.main()
