import os
import tempfile
import unittest
import unittest.mock

import numpy as np
import pandas as pd

import genetraj.__main__
import genetraj.commands
import genetraj.io


class TestCommands(unittest.TestCase):

    def setUp(self):
        self.tmp_dir = tempfile.TemporaryDirectory()
        pseudotime = np.linspace(0, 1, 60)
        centers = np.linspace(0, 1, 12)
        x = 10 * np.exp(-np.square(pseudotime[:, np.newaxis] - centers[np.newaxis, :]) / (2 * 0.1 ** 2))
        cells = ['c{}'.format(i) for i in range(60)]
        self.genes = ['g{}'.format(i) for i in range(12)]
        self.matrix = self.path('matrix.txt')
        self.embedding = self.path('embedding.txt')
        pd.DataFrame(x, index=cells, columns=self.genes).to_csv(self.matrix, sep='\t', index_label='id')
        pd.DataFrame({'DM_1': pseudotime, 'DM_2': np.zeros(60)}, index=cells).to_csv(
            self.embedding, sep='\t', index_label='id')

    def tearDown(self):
        self.tmp_dir.cleanup()

    def path(self, name):
        return os.path.join(self.tmp_dir.name, name)

    def run_command(self, command, args):
        parser = command.create_parser()
        command.main(parser.parse_args(args))

    def test_run(self):
        out = self.path('result')
        self.run_command(genetraj.commands.run,
                         ['--matrix', self.matrix, '--embedding', self.embedding, '--max_expr_fraction', '1',
                          '--n_meta_cells', '8', '--gene_components', '4', '--gene_k', '3', '--n_trajectories', '2',
                          '--t_list', '3,3', '--dims', '2', '--out', out])
        for suffix in ('_gene_distance.txt', '_gene_embedding.txt', '_gene_embedding_eigenvalues.txt',
                       '_gene_trajectory.txt'):
            self.assertTrue(os.path.exists(out + suffix))
        df = genetraj.io.read_gene_trajectory(out + '_gene_trajectory.txt')
        self.assertEqual(list(df.index), self.genes)
        self.assertEqual(list(df.columns), ['selected', 'Pseudoorder-1', 'Pseudoorder-2'])

    def test_gene_distance_pairs_trajectory(self):
        gene_distance = self.path('gene_distance')
        self.run_command(genetraj.commands.gene_distance,
                         ['--matrix', self.matrix, '--embedding', self.embedding, '--max_expr_fraction', '1',
                          '--n_meta_cells', '8', '--out', gene_distance, '--format', 'h5'])
        matrix, ids = genetraj.io.read_distance_matrix(gene_distance + '.h5')
        self.assertEqual(list(ids), self.genes)
        self.assertEqual(matrix.kind, 'dense')

        pairs = self.path('pairs')
        self.run_command(genetraj.commands.gene_pairs,
                         ['--gene_distance', gene_distance + '.h5', '--gene_k', '2', '--alpha', '1', '--out', pairs])

        sparse_distance = self.path('sparse_distance')
        self.run_command(genetraj.commands.gene_distance,
                         ['--matrix', self.matrix, '--embedding', self.embedding, '--max_expr_fraction', '1',
                          '--gene_pairs', pairs + '.txt', '--out', sparse_distance])
        matrix, ids = genetraj.io.read_distance_matrix(sparse_distance + '.txt')
        self.assertEqual(matrix.kind, 'sparse')

        trajectory = self.path('trajectory')
        self.run_command(genetraj.commands.gene_trajectory,
                         ['--gene_distance', gene_distance + '.h5', '--gene_components', '4', '--gene_k', '3',
                          '--n_trajectories', '1', '--t_list', '2', '--dims', '2', '--out', trajectory])
        df = genetraj.io.read_gene_trajectory(trajectory + '.txt')
        self.assertEqual(len(df), 12)

    def test_graph_distance(self):
        out = self.path('cell_distance')
        self.run_command(genetraj.commands.graph_distance, ['--embedding', self.embedding, '--k', '5', '--out', out])
        matrix, ids = genetraj.io.read_distance_matrix(out + '.txt')
        self.assertEqual(matrix.shape, (60, 60))
        self.assertEqual(ids[0], 'c0')

    def test_main_dispatch(self):
        out = self.path('cell_distance')
        argv = ['genetraj', 'graph_distance', '--embedding', self.embedding, '--k', '5', '--out', out]
        with unittest.mock.patch('sys.argv', argv):
            genetraj.__main__.main()
        matrix, ids = genetraj.io.read_distance_matrix(out + '.txt')
        self.assertEqual(matrix.shape, (60, 60))


if __name__ == '__main__':
    unittest.main()
