import argparse
import logging

import genetraj.model

MATRIX_HELP = 'A matrix with cells on rows and genes on columns (h5ad, txt or csv)'
EMBEDDING_HELP = 'Table with an id column followed by one column per embedding dimension'
GENE_DISTANCE_HELP = 'Gene by gene distance matrix as produced by gene_distance (txt or h5)'
DISTANCE_FORMAT_CHOICES = ['txt', 'h5']


def configure_logging(args):
    if args.verbose:
        logger = logging.getLogger('genetraj')
        logger.setLevel(logging.DEBUG)
        logger.addHandler(logging.StreamHandler())


def parse_t_list(value):
    try:
        return [int(t) for t in value.split(',')]
    except ValueError:
        raise argparse.ArgumentTypeError('Expected a comma separated list of integers, got "{}"'.format(value))


def add_verbose_argument(parser):
    parser.add_argument('--verbose', help='Print progress information', action='store_true')


def add_gene_distance_arguments(parser):
    parser.add_argument('--n_meta_cells', type=int,
                        help='Number of meta-cells to coarse-grain cells into. Set to 0 to use cells directly')
    parser.add_argument('--random_state', type=int, help='Seed for the meta-cell clustering')
    parser.add_argument('--solver', choices=['emd', 'sinkhorn'],
                        help='The solver to use to compute Wasserstein distances')
    parser.add_argument('--max_iter', type=int, help='Maximum number of solver iterations per gene pair')
    parser.add_argument('--epsilon', type=float,
                        help='Entropy regularization for the sinkhorn solver, relative to the median cost')
    parser.add_argument('--tolerance', type=float, help='Marginal violation tolerance for the sinkhorn solver')
    parser.add_argument('--processes', type=int, help='Number of worker processes')
    parser.add_argument('--sparsify', action='store_true', default=None,
                        help='Compute full resolution distances only for the alpha * gene_k nearest genes '
                             'found on meta-cells')
    parser.add_argument('--alpha', type=int, help='Neighbor multiplier used with --sparsify')


def add_model_arguments(parser):
    parser.add_argument('--matrix', help=MATRIX_HELP, required=True)
    parser.add_argument('--embedding', help='Cell embedding. ' + EMBEDDING_HELP +
                                            '. Computed from PCA and a diffusion map when omitted')
    parser.add_argument('--transpose', help='Transpose the matrix', action='store_true')
    parser.add_argument('--parameters', help='Optional two column parameter file containing parameter name and value')
    parser.add_argument('--gene_filter', help='File with one gene id per line to include from the matrix')
    parser.add_argument('--cell_filter', help='File with one cell id per line to include from the matrix')
    parser.add_argument('--min_expr_fraction', type=float,
                        help='Minimum fraction of cells expressing a gene')
    parser.add_argument('--max_expr_fraction', type=float,
                        help='Maximum fraction of cells expressing a gene')
    parser.add_argument('--pca_comps', type=int, help='Number of PCA components for the cell embedding')
    parser.add_argument('--cell_dims', type=int, help='Number of cell embedding dimensions to use')
    parser.add_argument('--k', type=int, help='Number of nearest neighbors in the cell graph')
    parser.add_argument('--max_components', type=int,
                        help='Maximum number of connected components tolerated in the cell graph')
    add_gene_distance_arguments(parser)


def add_gene_trajectory_arguments(parser):
    parser.add_argument('--gene_components', type=int, help='Number of gene diffusion components')
    parser.add_argument('--gene_k', type=int,
                        help='Neighborhood size for the gene kernel bandwidth and the gene graph')
    parser.add_argument('--sigma', type=float, help='Fixed kernel bandwidth, adaptive when omitted')
    parser.add_argument('--t', type=int, help='Diffusion time of the gene embedding')
    parser.add_argument('--n_trajectories', type=int, help='Number of gene trajectories to extract')
    parser.add_argument('--t_list', type=parse_t_list,
                        help='Comma separated random walk steps for each trajectory (e.g. 4,7,7)')
    parser.add_argument('--dims', type=int, help='Number of gene embedding dimensions to find termini')
    parser.add_argument('--quantile', type=float,
                        help='Lower quantile of random walk visitation excluded from a trajectory')


MODEL_ARGUMENTS = ['parameters', 'gene_filter', 'cell_filter', 'min_expr_fraction', 'max_expr_fraction', 'pca_comps',
                   'cell_dims', 'k', 'max_components', 'n_meta_cells', 'random_state', 'solver', 'max_iter',
                   'epsilon', 'tolerance', 'processes', 'sparsify', 'alpha', 'gene_components', 'gene_k', 'sigma',
                   't', 'n_trajectories', 't_list', 'dims', 'quantile']


def initialize_model_from_args(args):
    kwargs = {name: getattr(args, name) for name in MODEL_ARGUMENTS if getattr(args, name, None) is not None}
    return genetraj.model.initialize_model(args.matrix, cell_embedding=args.embedding, transpose=args.transpose,
                                           **kwargs)


def get_parameter(args, name):
    value = getattr(args, name, None)
    return genetraj.model.DEFAULTS[name] if value is None else value
