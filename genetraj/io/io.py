# -*- coding: utf-8 -*-
import os

import anndata
import h5py
import numpy as np
import pandas as pd

from genetraj.matrix import DenseMatrix, SparseMatrix, as_matrix

MISSING_VALUE = 'NA'


def read_dataset(path, obs_filter=None, var_filter=None):
    """
    Read h5ad and delimited text formatted files

    Parameters
    ----------
    path: str
        File name of data file. Cells on rows, genes on columns.
    obs_filter {str, list}
        File with one id per line, name of a boolean field in obs, or a list of ids
    var_filter: {str, list}
        File with one id per line, name of a boolean field in var, or a list of ids
    Returns
    -------
    Annotated data matrix.
    """
    ext = get_filename_and_extension(str(path))[1]
    if ext in ('txt', 'csv', 'tsv'):
        df = pd.read_csv(path, engine='python', header=0, sep=None, index_col=0)
        adata = anndata.AnnData(X=df.values.astype(np.float64), obs=pd.DataFrame(index=df.index.astype(str)),
                                var=pd.DataFrame(index=df.columns.astype(str)))
    elif ext == 'h5ad':
        adata = anndata.read_h5ad(path)
    else:
        raise ValueError('Unknown file format "{}"'.format(ext))
    return filter_adata(adata, obs_filter=obs_filter, var_filter=var_filter)


def read_ids(path):
    """One id per line; lines starting with # are skipped."""
    with open(path) as fp:
        return [line.strip() for line in fp if line.strip() != '' and line[0] != '#']


def filter_adata(adata, obs_filter=None, var_filter=None):
    if obs_filter is not None:
        if isinstance(obs_filter, str) and os.path.exists(obs_filter):
            adata = adata[adata.obs.index.isin(read_ids(obs_filter))].copy()
        else:
            obs_filter = obs_filter.split(',') if isinstance(obs_filter, str) else list(obs_filter)
            if len(obs_filter) == 1 and obs_filter[0] in adata.obs:  # boolean field in obs
                adata = adata[adata.obs[obs_filter[0]].values.astype(bool)].copy()
            else:  # list of ids
                adata = adata[adata.obs.index.isin(obs_filter)].copy()
    if var_filter is not None:
        if isinstance(var_filter, str) and os.path.exists(var_filter):
            adata = adata[:, adata.var.index.isin(read_ids(var_filter))].copy()
        else:
            var_filter = var_filter.split(',') if isinstance(var_filter, str) else list(var_filter)
            if len(var_filter) == 1 and var_filter[0] in adata.var:  # boolean field in var
                adata = adata[:, adata.var[var_filter[0]].values.astype(bool)].copy()
            else:  # list of ids
                adata = adata[:, adata.var.index.isin(var_filter)].copy()
    return adata


def read_embedding(path):
    """
    Read a table with an id column followed by one column per dimension.

    Returns
    -------
    embedding : pd.DataFrame
    """
    return pd.read_csv(path, engine='python', sep=None, index_col=0)


def write_embedding(embedding, path):
    """Write a genetraj.diffusion_map.DiffusionEmbedding as a text table plus its eigenvalues."""
    path = check_file_extension(str(path), 'txt')
    embedding.to_frame().to_csv(path, index_label='id', sep='\t')
    basename = path[0:-len('.txt')]
    pd.DataFrame({'eigenvalue': embedding.eigenvalues},
                 index=['DM_{}'.format(i + 1) for i in range(embedding.n_components)]).to_csv(
        basename + '_eigenvalues.txt', index_label='id', sep='\t')
    return path


def read_distance_matrix(path):
    """
    Read a square distance matrix with ids as row and column headers.

    Formats are tab or comma delimited text (missing entries are NA) and h5 files
    with datasets 'matrix' and 'ids'.

    Returns
    -------
    matrix : genetraj.matrix.DenseMatrix or genetraj.matrix.SparseMatrix
        SparseMatrix when some entries were not computed.
    ids : ndarray of str
    """
    ext = get_filename_and_extension(str(path))[1]
    if ext == 'h5':
        with h5py.File(path, 'r') as f:
            values = f['matrix'][()]
            ids = np.array([x.decode('utf-8') if isinstance(x, bytes) else str(x) for x in f['ids'][()]],
                           dtype=object)
    else:
        df = pd.read_csv(path, engine='python', sep=None, index_col=0, na_values=[MISSING_VALUE])
        if list(df.index.astype(str)) != list(df.columns.astype(str)):
            raise ValueError('Row and column ids of {} differ'.format(path))
        values = df.values.astype(np.float64)
        ids = df.index.astype(str).values.astype(object)
    missing = np.isnan(values)
    if np.any(missing):
        rows, cols = np.where(~missing)
        return SparseMatrix(rows, cols, values[rows, cols], values.shape), ids
    return DenseMatrix(values), ids


def write_distance_matrix(matrix, ids, path, output_format='txt'):
    """
    Write a square distance matrix with ids as headers.

    Parameters
    ----------
    matrix : 2-D array_like, genetraj.matrix.DenseMatrix or SparseMatrix
        Not computed entries are written as NA (NaN in h5 files).
    ids : 1-D array_like of str
    path : str
    output_format : {'txt', 'h5'}
    """
    values = as_matrix(matrix).to_dense()
    ids = [str(x) for x in ids]
    path = check_file_extension(str(path), output_format)
    if output_format == 'txt':
        pd.DataFrame(values, index=ids, columns=ids).to_csv(path, sep='\t', index_label='id',
                                                            na_rep=MISSING_VALUE)
    elif output_format == 'h5':
        with h5py.File(path, 'w') as f:
            f.create_dataset('matrix', data=values, compression='gzip')
            f.create_dataset('ids', data=np.array(ids, dtype=h5py.string_dtype()))
    else:
        raise ValueError('Unknown file format')
    return path


def read_gene_pairs(path, gene_names):
    """
    Read a two column file of gene ids and convert it to index pairs.

    Raises
    ------
    ValueError
        If a gene id is not in gene_names.
    """
    df = pd.read_csv(path, engine='python', sep=None, header=0, dtype=str)
    index = pd.Index(gene_names)
    positions = index.get_indexer(df.iloc[:, 0:2].values.ravel())
    if np.any(positions < 0):
        unknown = df.iloc[:, 0:2].values.ravel()[positions < 0]
        raise ValueError('Unknown gene ids in {}: {}'.format(path, list(unknown[:10])))
    return positions.reshape(-1, 2)


def write_gene_pairs(pairs, gene_names, path):
    gene_names = np.asarray(gene_names, dtype=object)
    pairs = np.asarray(pairs, dtype=np.int64).reshape(-1, 2)
    path = check_file_extension(str(path), 'txt')
    pd.DataFrame({'gene1': gene_names[pairs[:, 0]], 'gene2': gene_names[pairs[:, 1]]}).to_csv(
        path, sep='\t', index=False)
    return path


def write_gene_trajectory(result, path):
    """Write a genetraj.trajectory.GeneTrajectory as one row per gene."""
    path = check_file_extension(str(path), 'txt')
    result.to_frame().to_csv(path, sep='\t', index_label='id', na_rep=MISSING_VALUE)
    return path


def read_gene_trajectory(path):
    return pd.read_csv(path, sep='\t', index_col='id', na_values=[MISSING_VALUE])


def parse_parameter_file(path):
    df = pd.read_csv(path, engine='python', sep=None, header=None)
    #  two column file containing parameter and value
    result = {}
    for i in range(len(df)):
        result[df.iloc[i, 0]] = df.iloc[i, 1]
    return result


def check_file_extension(name, output_format):
    if not str(name).lower().endswith('.' + output_format):
        name += '.' + output_format
    return name


def get_filename_and_extension(name):
    name = os.path.basename(name)
    dot_index = name.rfind('.')
    ext = ''
    basename = name
    if dot_index != -1:
        ext = name[dot_index + 1:].lower()
        basename = name[0:dot_index]
        if ext == 'gz':  # check for .txt.gz e.g.
            dot_index2 = basename.rfind('.')
            if dot_index2 != -1:
                ext = basename[dot_index2 + 1:].lower()
                basename = basename[0:dot_index2]
    return basename, ext
