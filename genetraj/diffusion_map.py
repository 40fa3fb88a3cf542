# -*- coding: utf-8 -*-

import logging

import numpy as np
import pandas as pd
import scipy.linalg
import scipy.sparse
import scipy.sparse.csgraph
import sklearn.decomposition
import sklearn.metrics

from genetraj.errors import DegenerateSpectrumError, ParameterError
from genetraj.matrix import as_matrix, check_distance_matrix

logger = logging.getLogger('genetraj')


class DiffusionEmbedding:
    """
    A diffusion map embedding.

    Parameters
    ----------
    coordinates : 2-D ndarray
        Items on rows, diffusion components on columns.
    eigenvalues : 1-D ndarray
        Eigenvalue of each component, in decreasing order of magnitude.
    names : 1-D array_like of str, optional
        Item ids.
    """

    def __init__(self, coordinates, eigenvalues, names=None):
        self.coordinates = coordinates
        self.eigenvalues = eigenvalues
        self.names = np.arange(coordinates.shape[0]).astype(str) if names is None else np.asarray(names, dtype=object)

    @property
    def n_components(self):
        return self.coordinates.shape[1]

    def to_frame(self):
        return pd.DataFrame(self.coordinates, index=self.names,
                            columns=['DM_{}'.format(i + 1) for i in range(self.n_components)])


def adaptive_bandwidth(distances, k):
    """Distance from each item to its k-th nearest neighbor. Missing entries are ignored."""
    n = distances.shape[0]
    d = np.where(np.isnan(distances), np.inf, distances).copy()
    np.fill_diagonal(d, np.inf)
    k = min(k, n - 1)
    sigma = np.sort(d, axis=1)[:, k - 1]
    finite = np.isfinite(sigma) & (sigma > 0)
    if not np.any(finite):
        raise DegenerateSpectrumError('No positive finite neighbor distance to set the kernel bandwidth',
                                      stage='diffusion_map')
    # items without k computed neighbors, or with duplicates, fall back to the median bandwidth
    sigma[~finite] = np.median(sigma[finite])
    return sigma


def affinity_matrix(distances, k=10, sigma=None):
    """
    Gaussian kernel over a distance matrix.

    With sigma None the bandwidth is adaptive, exp(-d_ij^2 / (sigma_i * sigma_j)) with
    sigma_i the distance from i to its k-th nearest neighbor; otherwise exp(-d^2 / sigma^2).
    Missing (NaN) distances give zero affinity.
    """
    if sigma is None:
        s = adaptive_bandwidth(distances, k)
        scale = np.outer(s, s)
    else:
        if sigma <= 0:
            raise ParameterError('sigma must be positive, got {}'.format(sigma), stage='diffusion_map')
        scale = sigma ** 2
    with np.errstate(invalid='ignore'):
        W = np.exp(-np.square(distances) / scale)
    W[np.isnan(W)] = 0
    np.fill_diagonal(W, 1)
    return W


def diffusion_map(distances, n_components=30, k=10, sigma=None, t=1, tolerance=1e-8, names=None):
    """
    Diffusion map embedding from a symmetric distance matrix.

    Parameters
    ----------
    distances : 2-D array_like, genetraj.matrix.DenseMatrix or SparseMatrix
        Symmetric non-negative distances. Entries that were not computed carry no affinity.
    n_components : int, optional
        Number of nontrivial diffusion components, must be below the number of items.
    k : int, optional
        Neighbor rank setting the adaptive kernel bandwidth.
    sigma : float, optional
        Fixed kernel bandwidth. Overrides the adaptive bandwidth.
    t : int, optional
        Diffusion time; coordinates are eigenvectors scaled by eigenvalue ** t.
    tolerance : float, optional
        Eigenvalues at or below this magnitude are treated as numerically zero.
    names : 1-D array_like of str, optional
        Item ids.

    Returns
    -------
    embedding : DiffusionEmbedding

    Raises
    ------
    ParameterError
        If the matrix is not square, symmetric and non-negative, or n_components >= n.
    DegenerateSpectrumError
        If fewer than n_components nontrivial eigenvalues exceed tolerance.
    """
    matrix = as_matrix(distances)
    check_distance_matrix(matrix, stage='diffusion_map')
    n = matrix.shape[0]
    if n_components < 1 or n_components >= n:
        raise ParameterError('n_components must be in [1, {}), got {}'.format(n, n_components), stage='diffusion_map')
    if k < 1:
        raise ParameterError('k must be >= 1, got {}'.format(k), stage='diffusion_map')

    W = affinity_matrix(matrix.to_dense(), k=k, sigma=sigma)
    n_kernel_components = scipy.sparse.csgraph.connected_components(scipy.sparse.csr_matrix(W > 0),
                                                                    directed=False)[0]
    if n_kernel_components > 1:
        logger.warning('Diffusion kernel has {} disconnected components; the leading components will '
                       'separate them'.format(n_kernel_components))
    d = W.sum(axis=1)
    d_sqrt = np.sqrt(d)
    S = W / np.outer(d_sqrt, d_sqrt)
    S = (S + S.T) / 2
    # eigenvalues of S are those of the Markov operator D^-1 W
    eigenvalues, eigenvectors = scipy.linalg.eigh(S)
    # right eigenvectors of the Markov operator, scaled so the trivial one is constant 1
    psi = eigenvectors / (d_sqrt / np.sqrt(d.sum()))[:, np.newaxis]
    trivial = np.argmax(eigenvalues)
    eigenvalues = np.delete(eigenvalues, trivial)
    psi = np.delete(psi, trivial, axis=1)
    # the kernel need not be positive semi-definite, components are ranked by magnitude
    order = np.argsort(-np.abs(eigenvalues), kind='stable')[:n_components]
    eigenvalues = eigenvalues[order]
    psi = psi[:, order]
    n_distinct = np.sum(np.abs(eigenvalues) > tolerance)
    if n_distinct < n_components:
        raise DegenerateSpectrumError(
            'Only {} of {} requested nontrivial eigenvalues exceed {:.1E}; reduce n_components'.format(
                n_distinct, n_components, tolerance), stage='diffusion_map')

    # fix the sign of each component so its largest entry is positive
    signs = np.sign(psi[np.argmax(np.abs(psi), axis=0), np.arange(psi.shape[1])])
    signs[signs == 0] = 1
    psi = psi * signs
    coordinates = psi * np.power(eigenvalues, t)
    logger.info('Diffusion map of {} items, top eigenvalues {}'.format(n, np.round(eigenvalues[:5], 4)))
    return DiffusionEmbedding(coordinates, eigenvalues, names)


def pca(x, n_components=30, random_state=58951):
    """
    Principal components of a cells by genes matrix.

    Returns
    -------
    coordinates : 2-D ndarray
        Cells on rows, components on columns.
    """
    x = x.toarray() if scipy.sparse.issparse(x) else np.asarray(x, dtype=np.float64)
    n_components = min(n_components, x.shape[0], x.shape[1])  # n_components must be <= ncells
    x = x - x.mean(axis=0)
    model = sklearn.decomposition.PCA(n_components=n_components, random_state=random_state)
    return model.fit_transform(x)


def cell_diffusion_map(embedding, n_components=30, k=10, sigma=None, t=1, names=None):
    """Diffusion map over cells, from Euclidean distances in a (PCA) embedding."""
    x = np.asarray(embedding, dtype=np.float64)
    distances = sklearn.metrics.pairwise.pairwise_distances(x, metric='euclidean')
    distances = (distances + distances.T) / 2
    np.fill_diagonal(distances, 0)
    return diffusion_map(distances, n_components=n_components, k=k, sigma=sigma, t=t, names=names)
