# -*- coding: utf-8 -*-

import collections
import logging

import numpy as np
import scipy.sparse

import genetraj.io
from genetraj.coarse_grain import coarse_grain
from genetraj.diffusion_map import cell_diffusion_map, diffusion_map, pca
from genetraj.errors import ParameterError
from genetraj.graph_distance import graph_distance
from genetraj.ot import compute_gene_distance, select_gene_pairs
from genetraj.trajectory import extract_gene_trajectories

logger = logging.getLogger('genetraj')

CELL_EMBEDDING_KEY = 'X_dm'

DEFAULTS = {
    # cell embedding and graph
    'pca_comps': 30, 'cell_dims': 10, 'k': 10, 'max_components': 1,
    # meta-cells, 0 to disable
    'n_meta_cells': 1000, 'random_state': 1,
    # transport; unset solver parameters use the solver's defaults
    'solver': 'emd', 'max_iter': None, 'epsilon': None, 'tolerance': None, 'processes': 1,
    'sparsify': False, 'alpha': 10,
    # gene embedding
    'gene_components': 30, 'gene_k': 10, 'sigma': None, 't': 1,
    # gene trajectories
    'n_trajectories': 3, 't_list': (4, 7, 7), 'dims': 5, 'quantile': 0.02,
    # gene selection
    'min_expr_fraction': 0.01, 'max_expr_fraction': 0.5,
}

PipelineResult = collections.namedtuple('PipelineResult',
                                        ['graph_distance', 'gene_distance', 'gene_embedding', 'gene_trajectory'])


def _cast_parameter(name, value):
    default = DEFAULTS[name]
    if value is None or (isinstance(value, float) and np.isnan(value)):
        return None
    if name == 't_list':
        if isinstance(value, str):
            value = value.split(',')
        elif np.isscalar(value):
            value = [value]
        return tuple(int(float(t)) for t in value)
    if name == 'sparsify':
        return value if isinstance(value, bool) else str(value).lower() in ('true', '1', 'yes')
    if name == 'solver':
        return str(value)
    # max_iter defaults to None, the solver's own cap
    if name == 'max_iter' or (isinstance(default, int) and not isinstance(default, bool)):
        return int(float(value))
    return float(value)


def select_genes(adata, min_expr_fraction=0.01, max_expr_fraction=0.5):
    """
    Keep genes expressed in a fraction of cells within [min_expr_fraction, max_expr_fraction].

    Genes with no expression at all are always removed.
    """
    x = adata.X
    expressed = (x > 0).sum(axis=0)
    expressed = np.asarray(expressed).ravel()
    fraction = expressed / x.shape[0]
    keep = (expressed > 0) & (fraction >= min_expr_fraction) & (fraction <= max_expr_fraction)
    logger.info('Selected {}/{} genes expressed in {:.1%} to {:.1%} of cells'.format(
        keep.sum(), len(keep), min_expr_fraction, max_expr_fraction))
    return adata[:, keep].copy()


class GeneTrajectoryModel:
    """
    The GeneTrajectoryModel runs the gene trajectory pipeline.

    Parameters
    ----------
    matrix : anndata.AnnData
        The gene expression matrix, cells on rows and genes on columns.
    cell_embedding : str or 2-D array_like, optional
        Cell embedding (e.g. diffusion components), or the obsm key holding it. When
        the key is absent the embedding is computed from PCA followed by a diffusion map.
    **kwargs : dict
        Pipeline parameters overriding genetraj.model.DEFAULTS. Also accepts
        'parameters' (two column parameter file), 'cell_filter' and 'gene_filter'.
    """

    def __init__(self, matrix, cell_embedding=CELL_EMBEDDING_KEY, **kwargs):
        cell_filter = kwargs.pop('cell_filter', None)
        gene_filter = kwargs.pop('gene_filter', None)
        parameters_from_file = kwargs.pop('parameters', None)

        self.config = dict(DEFAULTS)
        overrides = {}
        if parameters_from_file is not None:
            overrides.update(genetraj.io.parse_parameter_file(parameters_from_file))
        overrides.update(kwargs)
        for k in overrides:
            if k not in DEFAULTS:
                raise ParameterError('Unknown parameter "{}"'.format(k), stage='configuration')
            self.config[k] = _cast_parameter(k, overrides[k])

        if not isinstance(cell_embedding, str) and cell_embedding is not None:
            cell_embedding = np.asarray(cell_embedding, dtype=np.float64)
            if cell_embedding.shape[0] != matrix.shape[0]:
                raise ParameterError('Cell embedding has {} rows for {} cells'.format(
                    cell_embedding.shape[0], matrix.shape[0]), stage='configuration')
            matrix = matrix.copy()
            matrix.obsm[CELL_EMBEDDING_KEY] = cell_embedding
            cell_embedding = CELL_EMBEDDING_KEY
        matrix = genetraj.io.filter_adata(matrix, obs_filter=cell_filter, var_filter=gene_filter)
        self.cell_embedding_key = cell_embedding
        self.matrix = select_genes(matrix, self.config['min_expr_fraction'], self.config['max_expr_fraction'])
        if self.matrix.shape[0] == 0:
            raise ParameterError('No cells in matrix', stage='configuration')
        if self.matrix.shape[1] < 2:
            raise ParameterError('{} gene(s) left after selection, need at least 2'.format(self.matrix.shape[1]),
                                 stage='configuration')

    @property
    def gene_names(self):
        return self.matrix.var.index.values.astype(object)

    @property
    def cell_names(self):
        return self.matrix.obs.index.values.astype(object)

    def expression(self):
        """Genes on rows, cells on columns."""
        x = self.matrix.X
        return x.T.tocsr() if scipy.sparse.issparse(x) else np.asarray(x, dtype=np.float64).T

    def solver_params(self):
        return {x: self.config[x] for x in ('max_iter', 'epsilon', 'tolerance') if self.config[x] is not None}

    def cell_embedding(self):
        """
        The cell embedding used to build the cell graph, restricted to 'cell_dims' dimensions.
        """
        dims = self.config['cell_dims']
        key = self.cell_embedding_key
        if key is not None and key in self.matrix.obsm:
            return np.asarray(self.matrix.obsm[key], dtype=np.float64)[:, :dims]
        logger.info('Computing cell diffusion map from {} principal components'.format(self.config['pca_comps']))
        x = pca(self.matrix.X, n_components=self.config['pca_comps'], random_state=self.config['random_state'])
        return cell_diffusion_map(x, n_components=dims, k=self.config['k'], names=self.cell_names).coordinates

    def graph_distance(self, embedding=None):
        embedding = self.cell_embedding() if embedding is None else embedding
        return graph_distance(embedding, k=self.config['k'], max_components=self.config['max_components'],
                              processes=self.config['processes'])

    def compute_gene_distance(self, embedding=None, cell_distance=None, cancel_event=None):
        """
        Compute gene-gene Wasserstein distances.

        With 'n_meta_cells' > 0 cells are first coarse-grained into meta-cells. With
        'sparsify' the meta-cell distances only select, for each gene, its alpha * gene_k
        nearest genes, and those pairs are then computed over all cells.

        Returns
        -------
        gene_distance : genetraj.ot.GeneDistance
        cell_distance : 2-D ndarray
            The cell-cell graph distance matrix that was used.
        """
        embedding = self.cell_embedding() if embedding is None else embedding
        cell_distance = self.graph_distance(embedding) if cell_distance is None else cell_distance
        expression = self.expression()
        n_meta_cells = self.config['n_meta_cells']
        params = dict(solver=self.config['solver'], processes=self.config['processes'], cancel_event=cancel_event,
                      **self.solver_params())
        if not n_meta_cells or n_meta_cells >= cell_distance.shape[0]:
            if n_meta_cells:
                logger.info('{} meta-cells requested for {} cells, using cells directly'.format(
                    n_meta_cells, cell_distance.shape[0]))
            return compute_gene_distance(expression, cell_distance, gene_names=self.gene_names, **params), \
                   cell_distance

        meta = coarse_grain(embedding, expression, cell_distance, n_meta_cells=n_meta_cells,
                            random_state=self.config['random_state'])
        coarse = compute_gene_distance(meta.expression, meta.graph_distance, gene_names=self.gene_names, **params)
        if not self.config['sparsify']:
            return coarse, cell_distance
        pairs = select_gene_pairs(coarse.matrix, k=self.config['gene_k'], alpha=self.config['alpha'])
        return compute_gene_distance(expression, cell_distance, gene_names=self.gene_names, gene_pairs=pairs,
                                     **params), cell_distance

    def gene_embedding(self, gene_distance):
        return diffusion_map(gene_distance.matrix, n_components=self.config['gene_components'],
                             k=self.config['gene_k'], sigma=self.config['sigma'], t=self.config['t'],
                             names=gene_distance.gene_names)

    def gene_trajectories(self, gene_embedding, gene_distance):
        return extract_gene_trajectories(gene_embedding, gene_distance, self.config['n_trajectories'],
                                         self.config['t_list'], k=self.config['gene_k'], dims=self.config['dims'],
                                         quantile=self.config['quantile'])

    def run(self, cancel_event=None):
        """
        Run the whole pipeline.

        Returns
        -------
        result : PipelineResult
            The cell graph distances, gene distances, gene embedding and gene trajectories.
        """
        gene_distance, cell_distance = self.compute_gene_distance(cancel_event=cancel_event)
        gene_embedding = self.gene_embedding(gene_distance)
        gene_trajectory = self.gene_trajectories(gene_embedding, gene_distance)
        return PipelineResult(cell_distance, gene_distance, gene_embedding, gene_trajectory)


def initialize_model(matrix, cell_embedding=None, **kwargs):
    """
    Initializes a GeneTrajectoryModel from files.

    Parameters
    ----------
    matrix : str
        Path to a gene expression matrix file, cells on rows.
    cell_embedding : str, optional
        Path to a table of cell embedding coordinates with an id column. Without it,
        the 'X_dm' obsm entry of the matrix is used, or the embedding is computed.
    **kwargs : dict
        Other keywords arguments, passed to GeneTrajectoryModel.

    Returns
    -------
    model : GeneTrajectoryModel

    Example
    -------
    >>> initialize_model('matrix.h5ad', 'dm.txt', n_meta_cells=500, t_list=[4, 7, 7])
    """
    ds = genetraj.io.read_dataset(matrix)
    if kwargs.pop('transpose', False):
        ds = ds.T
    if cell_embedding is not None:
        df = genetraj.io.read_embedding(cell_embedding)
        df.index = df.index.astype(str)
        missing = ~ds.obs.index.isin(df.index)
        if missing.any():
            raise ParameterError('{} cells have no embedding in {}'.format(missing.sum(), cell_embedding),
                                 stage='configuration')
        return GeneTrajectoryModel(ds, cell_embedding=df.loc[ds.obs.index].values, **kwargs)
    return GeneTrajectoryModel(ds, **kwargs)
