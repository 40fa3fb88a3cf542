# -*- coding: utf-8 -*-

import logging

import numpy as np
import scipy.sparse
import sklearn.cluster

from genetraj.errors import ConnectivityError, InvalidClusterCount, ParameterError
from genetraj.graph_distance import count_unreachable_pairs

logger = logging.getLogger('genetraj')


class CoarseGrained:
    """
    Meta-cells computed from a clustering of cells.

    Parameters
    ----------
    assignment : 1-D array of int
        Meta-cell id of each original cell.
    graph_distance : 2-D ndarray
        Meta-cell by meta-cell distance matrix, mean of member cell distances.
    expression : 2-D ndarray
        Genes on rows, meta-cells on columns, sum of member cell expression.
    """

    def __init__(self, assignment, graph_distance, expression):
        self.assignment = assignment
        self.graph_distance = graph_distance
        self.expression = expression

    @property
    def n_meta_cells(self):
        return self.graph_distance.shape[0]

    @property
    def sizes(self):
        return np.bincount(self.assignment, minlength=self.n_meta_cells)


def membership_matrix(assignment, n_meta_cells):
    """Sparse one-hot matrix with meta-cells on rows and cells on columns."""
    n_cells = len(assignment)
    return scipy.sparse.csr_matrix((np.ones(n_cells), (assignment, np.arange(n_cells))),
                                   shape=(n_meta_cells, n_cells))


def cluster_cells(cell_embedding, n_meta_cells, random_state=1, max_iter=50):
    """
    Assign each cell to one of n_meta_cells k-means clusters.

    Raises
    ------
    InvalidClusterCount
        If n_meta_cells is not in [1, n_cells) or k-means leaves a cluster empty.
    """
    x = np.asarray(cell_embedding, dtype=np.float64)
    n_cells = x.shape[0]
    if n_meta_cells < 1 or n_meta_cells >= n_cells:
        raise InvalidClusterCount(
            'Number of meta-cells must be in [1, {}) for {} cells, got {}'.format(n_cells, n_cells, n_meta_cells),
            stage='coarse_grain')
    km = sklearn.cluster.KMeans(n_clusters=n_meta_cells, random_state=random_state, max_iter=max_iter, n_init=10)
    assignment = km.fit_predict(x)
    n_found = len(np.unique(assignment))
    if n_found != n_meta_cells:
        raise InvalidClusterCount(
            'k-means produced {} non-empty clusters out of {} requested; the embedding has too few distinct '
            'cells'.format(n_found, n_meta_cells), stage='coarse_grain')
    return assignment


def coarse_grain(cell_embedding, expression, graph_distance, n_meta_cells=1000, random_state=1, max_iter=50):
    """
    Reduce cells to meta-cells.

    Parameters
    ----------
    cell_embedding : 2-D array_like
        Cells on rows, embedding dimensions on columns. Used for clustering.
    expression : 2-D array_like or scipy.sparse matrix
        Genes on rows, cells on columns.
    graph_distance : 2-D array_like
        Cell-cell graph distance matrix.
    n_meta_cells : int, optional
        Number of meta-cells, must be below the number of cells.
    random_state : int, optional
        Seed for k-means.
    max_iter : int, optional
        Maximum number of k-means iterations.

    Returns
    -------
    coarse_grained : CoarseGrained
        The meta-cell assignment, the meta-cell distance matrix (mean of the pairwise
        distances between member cells, zero diagonal) and the meta-cell expression
        (sum of member cell expression, so the mass of each gene is preserved).

    Raises
    ------
    InvalidClusterCount
        If n_meta_cells is not in [1, n_cells).
    ConnectivityError
        If graph_distance holds unreachable (infinite) entries.
    """
    graph_distance = np.asarray(graph_distance, dtype=np.float64)
    n_cells = graph_distance.shape[0]
    if graph_distance.shape != (n_cells, n_cells):
        raise ParameterError('Graph distance must be square, got shape {}'.format(graph_distance.shape),
                             stage='coarse_grain')
    if np.shape(cell_embedding)[0] != n_cells or expression.shape[1] != n_cells:
        raise ParameterError('Cell embedding has {} cells, expression {} and graph distance {}'.format(
            np.shape(cell_embedding)[0], expression.shape[1], n_cells), stage='coarse_grain')
    n_unreachable = count_unreachable_pairs(graph_distance)
    if n_unreachable > 0:
        raise ConnectivityError('Graph distance has {} unreachable cell pairs, cannot average them'.format(
            n_unreachable), stage='coarse_grain', n_unreachable_pairs=n_unreachable)

    assignment = cluster_cells(cell_embedding, n_meta_cells, random_state=random_state, max_iter=max_iter)
    logger.info('Coarse-grained {} cells into {} meta-cells'.format(n_cells, n_meta_cells))
    membership = membership_matrix(assignment, n_meta_cells)
    sizes = np.asarray(membership.sum(axis=1)).ravel()

    summed = membership.dot(membership.dot(graph_distance).T)
    meta_distance = np.asarray(summed) / np.outer(sizes, sizes)
    meta_distance = (meta_distance + meta_distance.T) / 2
    np.fill_diagonal(meta_distance, 0)

    meta_expression = membership.dot(expression.T).T
    if scipy.sparse.issparse(meta_expression):
        meta_expression = meta_expression.toarray()
    return CoarseGrained(assignment, meta_distance, np.asarray(meta_expression, dtype=np.float64))
