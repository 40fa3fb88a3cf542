# -*- coding: utf-8 -*-

import collections
import logging
from functools import reduce

import numpy as np
import pandas as pd

from genetraj.errors import ParameterError
from genetraj.matrix import as_matrix

logger = logging.getLogger('genetraj')

UNSELECTED = 'unselected'

Trajectory = collections.namedtuple('Trajectory', ['name', 'terminus', 'genes', 'pseudo_order', 'k'])
Trajectory.__doc__ = """
One extracted gene trajectory.

genes are gene indices sorted from the terminus outward and pseudo_order holds
their pseudo-order (1 for the terminus). k is the neighborhood size actually used.
"""

ExtractionState = collections.namedtuple('ExtractionState', ['available', 'trajectories', 'warnings'])
ExtractionState.__doc__ = """
Immutable state threaded through trajectory extraction.

available is a sorted tuple of gene indices not yet assigned, trajectories the
tuple of extracted Trajectory values and warnings a tuple of messages.
"""


class GeneTrajectory:
    """
    The result of a gene trajectory extraction.

    Parameters
    ----------
    gene_names : 1-D array_like of str
        Gene ids, in the order of the embedding rows.
    trajectories : tuple of Trajectory
        Extracted trajectories, in extraction order.
    warnings : tuple of str, optional
        Messages about parameters adjusted during extraction.
    """

    def __init__(self, gene_names, trajectories, warnings=()):
        self.gene_names = np.asarray(gene_names, dtype=object)
        self.trajectories = tuple(trajectories)
        self.warnings = tuple(warnings)
        labels = np.full(len(self.gene_names), UNSELECTED, dtype=object)
        for trajectory in self.trajectories:
            labels[list(trajectory.genes)] = trajectory.name
        labels.setflags(write=False)
        self.labels = labels

    @property
    def names(self):
        return [trajectory.name for trajectory in self.trajectories]

    def trajectory(self, name):
        for trajectory in self.trajectories:
            if trajectory.name == name:
                return trajectory
        raise KeyError(name)

    def ordered_genes(self, name):
        """Gene ids of a trajectory from the terminus outward."""
        return list(self.gene_names[list(self.trajectory(name).genes)])

    def to_frame(self):
        """
        One row per gene with its label ('selected') and one 'Pseudoorder-i' column per
        trajectory, missing for genes outside that trajectory.
        """
        df = pd.DataFrame(index=pd.Index(self.gene_names, name='id'))
        df['selected'] = self.labels
        for index, trajectory in enumerate(self.trajectories):
            column = np.full(len(self.gene_names), np.nan)
            column[list(trajectory.genes)] = trajectory.pseudo_order
            df['Pseudoorder-{}'.format(index + 1)] = column
        return df


def random_walk_matrix(distances, k):
    """
    Row-stochastic transition matrix over a symmetrized kNN graph with self loops.

    Infinite distances never become edges.
    """
    n = distances.shape[0]
    adjacency = np.zeros((n, n))
    if k > 0:
        d = np.array(distances, dtype=np.float64)
        np.fill_diagonal(d, np.inf)
        neighbors = np.argsort(d, axis=1, kind='stable')[:, :k].ravel()
        rows = np.repeat(np.arange(n), k)
        valid = np.isfinite(d[rows, neighbors])
        adjacency[rows[valid], neighbors[valid]] = 1
    adjacency = np.maximum(adjacency, adjacency.T)
    np.fill_diagonal(adjacency, 1)
    return adjacency / adjacency.sum(axis=1)[:, np.newaxis]


def random_walk(transition, seed, steps):
    """
    Run a random walk from seed.

    Returns
    -------
    visitation : 1-D ndarray
        Sum of the walk distributions over steps 0..steps.
    arrival : 1-D ndarray
        First step at which each node has positive probability, inf if never reached.
    """
    p = np.zeros(transition.shape[0])
    p[seed] = 1
    visitation = p.copy()
    arrival = np.full(len(p), np.inf)
    arrival[seed] = 0
    for step in range(1, steps + 1):
        p = p.dot(transition)
        visitation += p
        arrival[(p > 0) & np.isinf(arrival)] = step
    return visitation, arrival


def select_terminus(embedding, available, origin):
    distance_to_origin = np.linalg.norm(embedding[available] - origin, axis=1)
    # argmax returns the first maximum, i.e. the lowest gene index
    return available[np.argmax(distance_to_origin)]


def extract_step(state, steps, embedding, distances, k=10, quantile=0.02, origin=None):
    """
    Extract one trajectory from the genes still available.

    Parameters
    ----------
    state : ExtractionState
    steps : int
        Number of random walk steps. 0 yields a trajectory made of the terminus only.
    embedding : 2-D ndarray
        Gene embedding, restricted to the dimensions used to pick termini.
    distances : genetraj.matrix.DenseMatrix or SparseMatrix
        Gene-gene distances. Not computed entries count as infinitely far.
    k : int, optional
        Neighborhood size of the gene graph.
    quantile : float, optional
        Genes whose visitation score is below this quantile of the positive scores are
        left out.
    origin : 1-D ndarray, optional
        Point from which termini are the furthest. Defaults to the embedding mean.

    Returns
    -------
    state : ExtractionState
        A new state; the input state is not modified.
    """
    if len(state.available) == 0:
        return state
    available = np.asarray(state.available, dtype=np.int64)
    name = 'Trajectory-{}'.format(len(state.trajectories) + 1)
    origin = embedding.mean(axis=0) if origin is None else origin
    terminus = select_terminus(embedding, available, origin)
    seed = int(np.where(available == terminus)[0][0])

    warnings = state.warnings
    k_used = min(k, len(available) - 1)
    if k_used < k:
        message = '{}: only {} genes available, using k={} instead of {}'.format(name, len(available), k_used, k)
        logger.warning(message)
        warnings = warnings + (message,)

    d = distances.submatrix(available, missing=np.inf)
    visitation, arrival = random_walk(random_walk_matrix(d, k_used), seed, steps)
    positive = visitation > 0
    cutoff = np.quantile(visitation[positive], quantile)
    members = positive & (visitation >= cutoff)
    members[seed] = True

    positions = np.where(members)[0]
    # terminus first, then by walk arrival step, distance to the terminus and gene index
    order = np.lexsort((available[positions], d[seed, positions], arrival[positions]))
    genes = available[positions][order]
    trajectory = Trajectory(name, int(terminus), tuple(int(g) for g in genes),
                            tuple(float(x) for x in range(1, len(genes) + 1)), k_used)
    logger.info('{}: terminus {}, {} genes'.format(name, terminus, len(genes)))
    return ExtractionState(tuple(int(g) for g in available[~members]), state.trajectories + (trajectory,), warnings)


def extract_gene_trajectories(embedding, distances, n_trajectories, t_list, k=10, dims=5, quantile=0.02,
                              gene_names=None, origin=None):
    """
    Sequentially extract gene trajectories from a gene embedding.

    Parameters
    ----------
    embedding : 2-D array_like or genetraj.diffusion_map.DiffusionEmbedding
        Genes on rows, diffusion components on columns.
    distances : 2-D array_like, genetraj.matrix.DenseMatrix, SparseMatrix or genetraj.ot.GeneDistance
        Gene-gene distance matrix.
    n_trajectories : int
        Number of trajectories to extract.
    t_list : list of int
        Random walk steps for each trajectory.
    k : int, optional
        Neighborhood size of the gene graph.
    dims : int, optional
        Number of embedding dimensions used to select termini.
    quantile : float, optional
        Lower quantile of positive visitation scores excluded from a trajectory.
    gene_names : 1-D array_like of str, optional
        Gene ids. Taken from the embedding or distances when available.
    origin : 1-D array_like, optional
        Point from which termini are the furthest, in the first dims coordinates.
        Defaults to the mean of the embedding.

    Returns
    -------
    result : GeneTrajectory
        Every gene is labeled with one trajectory name or 'unselected'.
    """
    if hasattr(embedding, 'coordinates'):
        gene_names = embedding.names if gene_names is None else gene_names
        embedding = embedding.coordinates
    if hasattr(distances, 'gene_names'):
        gene_names = distances.gene_names if gene_names is None else gene_names
        distances = distances.matrix
    embedding = np.asarray(embedding, dtype=np.float64)
    distances = as_matrix(distances)
    n_genes = embedding.shape[0]
    if distances.shape != (n_genes, n_genes):
        raise ParameterError('Distance matrix shape {} does not match {} embedded genes'.format(
            distances.shape, n_genes), stage='gene_trajectory')
    if n_trajectories < 1:
        raise ParameterError('n_trajectories must be >= 1, got {}'.format(n_trajectories), stage='gene_trajectory')
    if len(t_list) < n_trajectories:
        raise ParameterError('t_list has {} entries for {} trajectories'.format(len(t_list), n_trajectories),
                             stage='gene_trajectory')
    if any(int(t) != t or t < 0 for t in t_list):
        raise ParameterError('t_list entries must be non-negative integers, got {}'.format(list(t_list)),
                             stage='gene_trajectory')
    if k < 1:
        raise ParameterError('k must be >= 1, got {}'.format(k), stage='gene_trajectory')
    if dims < 1 or dims > embedding.shape[1]:
        raise ParameterError('dims must be in [1, {}], got {}'.format(embedding.shape[1], dims),
                             stage='gene_trajectory')
    if not 0 <= quantile < 1:
        raise ParameterError('quantile must be in [0, 1), got {}'.format(quantile), stage='gene_trajectory')
    if gene_names is None:
        gene_names = np.arange(n_genes).astype(str)

    x = embedding[:, :dims]
    origin = x.mean(axis=0) if origin is None else np.asarray(origin, dtype=np.float64)[:dims]
    initial = ExtractionState(tuple(range(n_genes)), (), ())
    final = reduce(lambda state, steps: extract_step(state, int(steps), x, distances, k=k, quantile=quantile,
                                                     origin=origin),
                   list(t_list)[:n_trajectories], initial)
    if len(final.trajectories) < n_trajectories:
        logger.info('All genes assigned after {} trajectories'.format(len(final.trajectories)))
    return GeneTrajectory(gene_names, final.trajectories, final.warnings)
