# -*- coding: utf-8 -*-

import logging

import numpy as np

from genetraj.errors import ParameterError
from genetraj.matrix import as_matrix

logger = logging.getLogger('genetraj')


def nearest_neighbors(distances, n_neighbors):
    """
    Indices of the n_neighbors nearest items of each item, self excluded.

    Missing (not computed) distances count as infinitely far. Ties are broken by
    item index.
    """
    matrix = as_matrix(distances)
    n = matrix.shape[0]
    neighbors = np.zeros((n, n_neighbors), dtype=np.int64)
    for i in range(n):
        d = matrix.row(i, missing=np.inf)
        d[i] = np.inf
        # stable sort keeps lower indices first among ties
        order = np.argsort(d, kind='stable')
        order = order[order != i]
        neighbors[i] = order[:n_neighbors]
    return neighbors


def select_gene_pairs(coarse_distance, k=10, alpha=10):
    """
    Select the gene pairs worth computing at full resolution.

    A pair (i, j) is kept when j is among the alpha * k nearest neighbors of i in the
    coarse gene distance matrix, or i among those of j.

    Parameters
    ----------
    coarse_distance : 2-D array_like, genetraj.matrix.DenseMatrix or SparseMatrix
        Gene-gene distances computed on meta-cells.
    k : int, optional
        Neighborhood size used downstream for the gene graph.
    alpha : int, optional
        Multiplier on k.

    Returns
    -------
    pairs : 2-D ndarray of int, shape (n_pairs, 2)
        Unique pairs with pairs[:, 0] < pairs[:, 1], sorted.
    """
    if k < 1:
        raise ParameterError('k must be >= 1, got {}'.format(k), stage='gene_pairs')
    if alpha < 1:
        raise ParameterError('alpha must be >= 1, got {}'.format(alpha), stage='gene_pairs')
    matrix = as_matrix(coarse_distance)
    n_genes = matrix.shape[0]
    n_neighbors = int(alpha * k)
    if n_neighbors > n_genes - 1:
        logger.warning('alpha * k = {} exceeds the number of other genes, using {}'.format(n_neighbors, n_genes - 1))
        n_neighbors = n_genes - 1
    neighbors = nearest_neighbors(matrix, n_neighbors)
    rows = np.repeat(np.arange(n_genes), n_neighbors)
    pairs = np.column_stack((rows, neighbors.ravel()))
    pairs = np.unique(np.sort(pairs, axis=1), axis=0)
    logger.info('Selected {} of {} gene pairs'.format(len(pairs), n_genes * (n_genes - 1) // 2))
    return pairs
