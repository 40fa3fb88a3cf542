# -*- coding: utf-8 -*-

import logging
import multiprocessing
from functools import partial

import numpy as np
import scipy.sparse
import scipy.sparse.csgraph
import sklearn.neighbors

from genetraj.errors import ConnectivityError, ParameterError

logger = logging.getLogger('genetraj')

# stands in for zero-length edges between duplicated cells, which a sparse graph cannot store
MIN_EDGE_WEIGHT = 1e-12


def knn_graph(embedding, k=10):
    """
    Build the undirected kNN graph over a cell embedding.

    Parameters
    ----------
    embedding : 2-D array_like
        Cells on rows, embedding dimensions (e.g. diffusion components) on columns.
    k : int
        Number of nearest neighbors per cell, excluding the cell itself.

    Returns
    -------
    graph : scipy.sparse.csr_matrix
        Symmetric adjacency matrix. graph[i, j] is the Euclidean distance between cells
        i and j when j is among the k nearest neighbors of i, or i among those of j.
    """
    x = np.asarray(embedding, dtype=np.float64)
    if x.ndim != 2:
        raise ParameterError('Cell embedding must be 2-D, got {} dimension(s)'.format(x.ndim), stage='graph_distance')
    if k < 1:
        raise ParameterError('k must be >= 1, got {}'.format(k), stage='graph_distance')
    n = x.shape[0]
    if n < k + 1:
        raise ParameterError('Cell embedding has {} cells, need at least k + 1 = {}'.format(n, k + 1),
                             stage='graph_distance')

    nn = sklearn.neighbors.NearestNeighbors(n_neighbors=k + 1).fit(x)
    distances, indices = nn.kneighbors(x)
    rows = []
    cols = []
    weights = []
    for i in range(n):
        # drop the query point itself; with duplicated cells it is not always in the first column
        keep = indices[i] != i
        if keep.sum() > k:
            keep[np.where(keep)[0][k:]] = False
        rows.append(np.full(keep.sum(), i))
        cols.append(indices[i][keep])
        weights.append(distances[i][keep])
    weights = np.maximum(np.concatenate(weights), MIN_EDGE_WEIGHT)
    graph = scipy.sparse.csr_matrix((weights, (np.concatenate(rows), np.concatenate(cols))), shape=(n, n))
    return graph.maximum(graph.T).tocsr()


def _shortest_path_rows(graph, sources):
    return scipy.sparse.csgraph.shortest_path(graph, method='D', directed=False, indices=sources)


def shortest_path_distances(graph, processes=1):
    """
    All-pairs shortest path lengths over a sparse weighted graph.

    Sources are split across worker processes when processes > 1. Unreachable
    pairs are numpy.inf.
    """
    n = graph.shape[0]
    if processes is None or processes <= 1 or n < 2 * processes:
        return _shortest_path_rows(graph, np.arange(n))
    chunks = np.array_split(np.arange(n), processes)
    with multiprocessing.Pool(processes) as pool:
        blocks = pool.map(partial(_shortest_path_rows, graph), chunks)
    return np.vstack(blocks)


def graph_distance(embedding, k=10, max_components=1, processes=1):
    """
    Compute the cell-cell graph distance matrix.

    Parameters
    ----------
    embedding : 2-D array_like
        Cells on rows, embedding dimensions on columns.
    k : int, optional
        Number of nearest neighbors used to build the graph.
    max_components : int, optional
        Largest number of connected components tolerated. Beyond it a
        ConnectivityError is raised. Otherwise cross-component distances are left
        as numpy.inf and a warning is logged.
    processes : int, optional
        Number of worker processes for the shortest path computation.

    Returns
    -------
    distances : 2-D ndarray
        Symmetric matrix of shortest path lengths with a zero diagonal.

    Raises
    ------
    ParameterError
        If k < 1 or the embedding has fewer than k + 1 cells.
    ConnectivityError
        If the graph has more than max_components connected components.
    """
    graph = knn_graph(embedding, k)
    n_components, labels = scipy.sparse.csgraph.connected_components(graph, directed=False)
    if n_components > 1:
        sizes = np.bincount(labels)
        n_unreachable_pairs = int((graph.shape[0] ** 2 - np.sum(sizes ** 2)) // 2)
        message = 'kNN graph (k={}) has {} connected components, {} unreachable cell pairs'.format(
            k, n_components, n_unreachable_pairs)
        if n_components > max_components:
            raise ConnectivityError(message + '; at most {} tolerated. Increase k'.format(max_components),
                                    stage='graph_distance', n_components=n_components,
                                    n_unreachable_pairs=n_unreachable_pairs)
        logger.warning(message)
    logger.info('Computing shortest paths over {} cells'.format(graph.shape[0]))
    distances = shortest_path_distances(graph, processes=processes)
    # undirected Dijkstra is symmetric up to rounding
    distances = np.minimum(distances, distances.T)
    np.fill_diagonal(distances, 0)
    return distances


def count_unreachable_pairs(distances):
    """Number of unordered pairs with an infinite distance."""
    return int(np.sum(np.isinf(np.triu(np.asarray(distances), 1))))
