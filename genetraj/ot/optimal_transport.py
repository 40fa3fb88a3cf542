# -*- coding: utf-8 -*-

import warnings

import numpy as np
import ot as pot
from scipy.special import logsumexp

from genetraj.errors import ParameterError

SOLVER_DEFAULTS = {
    'emd': {'max_iter': 100000},
    'sinkhorn': {'epsilon': 0.01, 'tolerance': 1e-9, 'max_iter': 10000, 'batch_size': 10},
}


def emd(p, q, C, max_iter=100000, **ignored):
    """
    Exact earth mover's distance by network simplex.

    Parameters
    ----------
    p : 1-D ndarray
        Source distribution, sums to 1.
    q : 1-D ndarray
        Target distribution, sums to 1.
    C : 2-D ndarray
        Ground cost, C[i][j] is the cost to move mass from support point i of p to point j of q.
    max_iter : int, optional
        Maximum number of simplex iterations.

    Returns
    -------
    distance : float
        Optimal transport cost. When max_iter is reached this is the cost of the
        current feasible plan, an upper bound of the optimum.
    converged : bool
        Whether the simplex reached optimality.
    """
    p = np.ascontiguousarray(p, dtype=np.float64)
    q = np.ascontiguousarray(q, dtype=np.float64)
    C = np.ascontiguousarray(C, dtype=np.float64)
    with warnings.catch_warnings():
        # reported through the returned flag instead
        warnings.simplefilter('ignore')
        cost, log = pot.emd2(p, q, C, numItermax=int(max_iter), log=True)
    return float(cost), log.get('warning') is None


def sinkhorn(p, q, C, epsilon=0.01, tolerance=1e-9, max_iter=10000, batch_size=10, **ignored):
    """
    Entropy regularized optimal transport, iterated on the dual potentials.

    Updates are computed with log-sum-exp so that points far from the other
    distribution (cost much larger than epsilon) do not underflow the kernel.

    Parameters
    ----------
    p : 1-D ndarray
        Source distribution, sums to 1, strictly positive.
    q : 1-D ndarray
        Target distribution, sums to 1, strictly positive.
    C : 2-D ndarray
        Ground cost.
    epsilon : float, optional
        Entropy regularization, relative to the median positive cost.
    tolerance : float, optional
        Upper bound on the L1 violation of the source marginal.
    max_iter : int, optional
        Maximum number of iterations. The current plan is returned, flagged
        as not converged, when it is reached.
    batch_size : int, optional
        Number of iterations between convergence checks.

    Returns
    -------
    distance : float
        Transport cost of the regularized plan, sum(R * C).
    converged : bool
        Whether the marginal violation fell below tolerance within max_iter iterations.
        A plan that is not finite is reported as not converged.
    """
    if epsilon <= 0:
        raise ParameterError('epsilon must be positive, got {}'.format(epsilon), stage='gene_distance')
    p = np.asarray(p, dtype=np.float64)
    q = np.asarray(q, dtype=np.float64)
    C = np.asarray(C, dtype=np.float64)
    positive = C[C > 0]
    scale = np.median(positive) if len(positive) > 0 else 1.0
    epsilon_i = epsilon * scale

    log_p = np.log(p)
    log_q = np.log(q)
    f = np.zeros(len(p))
    g = np.zeros(len(q))
    converged = False
    current_iter = 0
    while current_iter < max_iter:
        for i in range(batch_size):
            current_iter += 1
            f = epsilon_i * (log_p - logsumexp((g[np.newaxis, :] - C) / epsilon_i, axis=1))
            g = epsilon_i * (log_q - logsumexp((f[:, np.newaxis] - C) / epsilon_i, axis=0))
        R = np.exp((f[:, np.newaxis] + g[np.newaxis, :] - C) / epsilon_i)
        if np.abs(R.sum(axis=1) - p).sum() < tolerance:
            converged = True
            break
    R = np.exp((f[:, np.newaxis] + g[np.newaxis, :] - C) / epsilon_i)
    distance = float(np.sum(R * C))
    if not np.isfinite(distance):
        return distance, False
    return distance, converged


SOLVERS = {'emd': emd, 'sinkhorn': sinkhorn}


def get_solver(name):
    if name not in SOLVERS:
        raise ParameterError('Unknown solver "{}", choose one of {}'.format(name, sorted(SOLVERS)),
                             stage='gene_distance')
    return SOLVERS[name]


def wasserstein(p, q, C, solver='emd', **params):
    """
    Wasserstein-1 distance between two distributions over the same support.

    Parameters
    ----------
    p, q : 1-D array_like
        Non-negative weights over the support points. Normalized to sum to 1.
    C : 2-D array_like
        Ground cost between support points.
    solver : {'emd', 'sinkhorn'}
        'emd' solves the linear program exactly, 'sinkhorn' the entropy regularized problem.
    **params : dict
        Solver parameters (max_iter, epsilon, tolerance, ...).

    Returns
    -------
    distance : float
    converged : bool
    """
    p = np.asarray(p, dtype=np.float64)
    q = np.asarray(q, dtype=np.float64)
    C = np.asarray(C, dtype=np.float64)
    if p.sum() <= 0 or q.sum() <= 0:
        raise ParameterError('Distributions must have positive mass', stage='gene_distance')
    p = p / p.sum()
    q = q / q.sum()
    # zero-mass points never move, so only the two supports matter
    p_support = np.where(p > 0)[0]
    q_support = np.where(q > 0)[0]
    return get_solver(solver)(p[p_support], q[q_support], C[np.ix_(p_support, q_support)], **params)
