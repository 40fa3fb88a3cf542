# -*- coding: utf-8 -*-

import logging
import multiprocessing
import time
import warnings
from functools import partial

import numpy as np
import pandas as pd
import scipy.sparse

from genetraj.errors import ComputationCancelled, ConnectivityError, ConvergenceFailure, InvalidDistribution, \
    ParameterError
from genetraj.matrix import DenseMatrix, SparseMatrix, as_matrix
from genetraj.ot.optimal_transport import SOLVER_DEFAULTS, get_solver

logger = logging.getLogger('genetraj')


class GeneDistance:
    """
    Gene-gene Wasserstein distances.

    Parameters
    ----------
    matrix : genetraj.matrix.DenseMatrix or genetraj.matrix.SparseMatrix
        Symmetric distances. In a SparseMatrix, entries that are not stored were not computed.
    gene_names : 1-D array_like of str
        Gene ids, in matrix order.
    failed_pairs : 2-D ndarray of int, optional
        Gene index pairs (i < j) for which the solver did not converge. Their value is
        the solver's last estimate.
    """

    def __init__(self, matrix, gene_names, failed_pairs=None):
        self.matrix = matrix
        self.gene_names = np.asarray(gene_names, dtype=object)
        self.failed_pairs = np.zeros((0, 2), dtype=np.int64) if failed_pairs is None else np.asarray(
            failed_pairs, dtype=np.int64).reshape(-1, 2)
        if len(self.gene_names) != matrix.shape[0]:
            raise ParameterError('{} gene names for a matrix of shape {}'.format(len(self.gene_names), matrix.shape))

    @property
    def n_genes(self):
        return len(self.gene_names)

    @property
    def is_sparse(self):
        return self.matrix.kind == 'sparse'

    def to_frame(self):
        """Dense DataFrame indexed by gene on both axes, NaN where not computed."""
        return pd.DataFrame(self.matrix.to_dense(), index=self.gene_names, columns=self.gene_names)

    def __repr__(self):
        return 'GeneDistance(n_genes={}, {})'.format(self.n_genes, self.matrix)


def normalize_distributions(expression, gene_names=None):
    """
    Normalize each gene (row) to a probability distribution over cells.

    Raises
    ------
    InvalidDistribution
        If a gene has negative values or a total expression of zero.
    """
    x = expression.toarray() if scipy.sparse.issparse(expression) else np.array(expression, dtype=np.float64)
    x = x.astype(np.float64)
    if gene_names is None:
        gene_names = np.arange(x.shape[0]).astype(str)
    negative = np.where((x < 0).any(axis=1))[0]
    if len(negative) > 0:
        raise InvalidDistribution('Negative expression for genes {}'.format(list(np.asarray(gene_names)[negative[:10]])),
                                  stage='gene_distance')
    totals = x.sum(axis=1)
    empty = np.where(~(totals > 0))[0]
    if len(empty) > 0:
        raise InvalidDistribution(
            '{} gene(s) have zero total expression and cannot be normalized: {}'.format(
                len(empty), list(np.asarray(gene_names)[empty[:10]])), stage='gene_distance')
    return x / totals[:, np.newaxis]


def check_ground_cost(cost, n_cells):
    cost = as_matrix(cost).to_dense()
    if cost.shape != (n_cells, n_cells):
        raise ParameterError('Ground cost has shape {}, expression has {} cells'.format(cost.shape, n_cells),
                             stage='gene_distance')
    if np.any(np.isnan(cost)):
        raise ParameterError('Ground cost has missing entries', stage='gene_distance')
    n_unreachable = int(np.sum(np.isinf(np.triu(cost, 1))))
    if n_unreachable > 0:
        raise ConnectivityError('Ground cost has {} unreachable cell pairs'.format(n_unreachable),
                                stage='gene_distance', n_unreachable_pairs=n_unreachable)
    if np.any(cost < 0):
        raise ParameterError('Ground cost must be non-negative', stage='gene_distance')
    if not np.allclose(cost, cost.T, atol=1e-8, rtol=0):
        raise ParameterError('Ground cost must be symmetric', stage='gene_distance')
    return cost


def canonical_pairs(gene_pairs, n_genes):
    """Unique (i, j) pairs with i < j, sorted, self pairs dropped."""
    pairs = np.asarray(gene_pairs, dtype=np.int64).reshape(-1, 2)
    if len(pairs) > 0 and (pairs.min() < 0 or pairs.max() >= n_genes):
        raise ParameterError('Gene pair index out of range for {} genes'.format(n_genes), stage='gene_distance')
    pairs = np.sort(pairs, axis=1)
    pairs = pairs[pairs[:, 0] != pairs[:, 1]]
    return np.unique(pairs, axis=0)


def all_pairs(n_genes):
    i, j = np.triu_indices(n_genes, 1)
    return np.column_stack((i, j))


def _solve_pairs(distributions, cost, solver, params, pairs, cancel_event=None):
    solve = get_solver(solver)
    values = np.zeros(len(pairs))
    converged = np.ones(len(pairs), dtype=bool)
    for index, (i, j) in enumerate(pairs):
        if cancel_event is not None and cancel_event.is_set():
            raise ComputationCancelled('Cancelled after {} of {} gene pairs'.format(index, len(pairs)),
                                       stage='gene_distance')
        p = distributions[i]
        q = distributions[j]
        p_support = np.where(p > 0)[0]
        q_support = np.where(q > 0)[0]
        values[index], converged[index] = solve(p[p_support], q[q_support], cost[np.ix_(p_support, q_support)],
                                                **params)
    return values, converged


def compute_gene_distance(expression, cost, gene_names=None, gene_pairs=None, solver='emd', processes=1,
                          cancel_event=None, chunks_per_process=4, **params):
    """
    Compute Wasserstein distances between gene expression distributions.

    Parameters
    ----------
    expression : 2-D array_like or scipy.sparse matrix
        Non-negative expression, genes on rows, cells (or meta-cells) on columns.
    cost : 2-D array_like or genetraj.matrix.DenseMatrix
        Ground cost between cells, e.g. the graph distance matrix.
    gene_names : 1-D array_like of str, optional
        Gene ids. Defaults to row numbers.
    gene_pairs : 2-D array_like of int, optional
        Gene index pairs to compute. All pairs are computed when None.
    solver : {'emd', 'sinkhorn'}, optional
        Transport solver.
    processes : int, optional
        Number of worker processes.
    cancel_event : threading.Event, optional
        Checked between gene pairs (between chunks of pairs when processes > 1).
        The computation stops with ComputationCancelled once it is set.
    chunks_per_process : int, optional
        Number of chunks of pairs per worker process.
    **params : dict
        Solver parameters, see genetraj.ot.SOLVER_DEFAULTS.

    Returns
    -------
    gene_distance : GeneDistance
        Dense when all pairs were computed, sparse when restricted to gene_pairs.

    Raises
    ------
    InvalidDistribution
        If a gene has zero or negative expression.
    ConnectivityError
        If the ground cost has unreachable entries.
    ComputationCancelled
        If cancel_event was set.
    """
    get_solver(solver)
    solver_params = dict(SOLVER_DEFAULTS[solver])
    solver_params.update(params)
    if gene_names is None:
        gene_names = np.arange(expression.shape[0]).astype(str)
    distributions = normalize_distributions(expression, gene_names)
    n_genes, n_cells = distributions.shape
    cost = check_ground_cost(cost, n_cells)

    pairs = all_pairs(n_genes) if gene_pairs is None else canonical_pairs(gene_pairs, n_genes)
    logger.info('Computing {} gene pair distances over {} cells with {} solver'.format(len(pairs), n_cells, solver))
    start_time = time.time()
    if processes is None or processes <= 1 or len(pairs) < 2:
        values, converged = _solve_pairs(distributions, cost, solver, solver_params, pairs,
                                          cancel_event=cancel_event)
    else:
        chunks = np.array_split(pairs, min(len(pairs), processes * chunks_per_process))
        values = []
        converged = []
        with multiprocessing.Pool(processes) as pool:
            results = pool.imap(partial(_solve_pairs, distributions, cost, solver, solver_params), chunks)
            for index, (chunk_values, chunk_converged) in enumerate(results):
                values.append(chunk_values)
                converged.append(chunk_converged)
                logger.debug('Finished chunk {}/{}'.format(index + 1, len(chunks)))
                if cancel_event is not None and cancel_event.is_set() and index + 1 < len(chunks):
                    raise ComputationCancelled(
                        'Cancelled after {} of {} chunks of gene pairs'.format(index + 1, len(chunks)),
                        stage='gene_distance')
        values = np.concatenate(values)
        converged = np.concatenate(converged)
    logger.info('Computed {} gene pair distances in {:.3f}s'.format(len(pairs), time.time() - start_time))

    failed_pairs = pairs[~converged]
    if len(failed_pairs) > 0:
        failure = ConvergenceFailure(
            '{} of {} gene pairs did not converge within max_iter={}; their last estimate is kept'.format(
                len(failed_pairs), len(pairs), solver_params.get('max_iter')), stage='gene_distance')
        logger.warning(str(failure))
        warnings.warn(failure)
    values = np.maximum(values, 0)
    if gene_pairs is None:
        dense = np.zeros((n_genes, n_genes))
        dense[pairs[:, 0], pairs[:, 1]] = values
        dense[pairs[:, 1], pairs[:, 0]] = values
        matrix = DenseMatrix(dense)
    else:
        matrix = SparseMatrix.from_pairs(pairs, values, n_genes)
    return GeneDistance(matrix, gene_names, failed_pairs)
