# -*- coding: utf-8 -*-

import numpy as np
import pandas as pd
import scipy.sparse

from genetraj.errors import ParameterError


class DenseMatrix:
    """
    A fully computed square matrix.

    Parameters
    ----------
    values : 2-D array_like
        The matrix values. NaN entries are treated as not computed.
    """

    kind = 'dense'

    def __init__(self, values):
        values = np.array(values, dtype=np.float64)
        if values.ndim != 2:
            raise ParameterError('Expected a 2-D matrix, got {} dimension(s)'.format(values.ndim))
        values.setflags(write=False)
        self.values = values

    @property
    def shape(self):
        return self.values.shape

    def get(self, i, j, missing=np.nan):
        value = self.values[i, j]
        return missing if np.isnan(value) else value

    def row(self, i, missing=np.nan):
        r = self.values[i].copy()
        r[np.isnan(r)] = missing
        return r

    def submatrix(self, rows, cols=None, missing=np.nan):
        cols = rows if cols is None else cols
        m = self.values[np.ix_(rows, cols)]
        m[np.isnan(m)] = missing
        return m

    def to_dense(self, missing=np.nan):
        m = self.values.copy()
        m[np.isnan(m)] = missing
        return m

    def computed_mask(self):
        return ~np.isnan(self.values)

    def is_symmetric(self, tolerance=1e-8):
        v = self.values
        if v.shape[0] != v.shape[1]:
            return False
        return np.allclose(v, v.T, atol=tolerance, rtol=0, equal_nan=True)

    def __repr__(self):
        return 'DenseMatrix(shape={})'.format(self.shape)


class SparseMatrix:
    """
    A square matrix where only some entries are computed.

    Entries that were never set are "not computed"; they are distinct from an
    explicitly computed zero.

    Parameters
    ----------
    rows : 1-D array of int
    cols : 1-D array of int
    data : 1-D array of float
        Computed entries (rows[i], cols[i]) = data[i]. Duplicates keep the last value.
    shape : (int, int)
    """

    kind = 'sparse'

    def __init__(self, rows, cols, data, shape):
        rows = np.asarray(rows, dtype=np.int64)
        cols = np.asarray(cols, dtype=np.int64)
        data = np.asarray(data, dtype=np.float64)
        if not (len(rows) == len(cols) == len(data)):
            raise ParameterError('rows, cols and data must have the same length')
        n_rows, n_cols = shape
        if len(rows) > 0 and (rows.min() < 0 or rows.max() >= n_rows or cols.min() < 0 or cols.max() >= n_cols):
            raise ParameterError('Entry index out of bounds for shape {}'.format(shape))
        # keep the last value for duplicated coordinates
        keys = rows * n_cols + cols
        _, last = np.unique(keys[::-1], return_index=True)
        last = len(keys) - 1 - last
        self._rows = rows[last]
        self._cols = cols[last]
        self._data = data[last]
        self._shape = (n_rows, n_cols)
        self._lookup = scipy.sparse.csr_matrix((np.arange(1, len(last) + 1), (self._rows, self._cols)),
                                               shape=self._shape)

    @staticmethod
    def from_pairs(pairs, values, n, diagonal=0.0):
        """
        Build a symmetric matrix from upper-triangle pairs.

        Parameters
        ----------
        pairs : 2-D array of int, shape (n_pairs, 2)
        values : 1-D array of float
        n : int
            Matrix size.
        diagonal : float, optional
            Value stored on the diagonal. None to leave it not computed.
        """
        pairs = np.asarray(pairs, dtype=np.int64).reshape(-1, 2)
        values = np.asarray(values, dtype=np.float64)
        rows = [pairs[:, 0], pairs[:, 1]]
        cols = [pairs[:, 1], pairs[:, 0]]
        data = [values, values]
        if diagonal is not None:
            rows.append(np.arange(n))
            cols.append(np.arange(n))
            data.append(np.full(n, diagonal, dtype=np.float64))
        return SparseMatrix(np.concatenate(rows), np.concatenate(cols), np.concatenate(data), (n, n))

    @property
    def shape(self):
        return self._shape

    @property
    def nnz(self):
        return len(self._data)

    def entries(self):
        return self._rows.copy(), self._cols.copy(), self._data.copy()

    def _positions(self, rows, cols):
        return np.asarray(self._lookup[rows, cols]).ravel() - 1

    def get(self, i, j, missing=np.nan):
        pos = self._lookup[i, j] - 1
        return missing if pos < 0 else self._data[pos]

    def row(self, i, missing=np.nan):
        r = np.full(self._shape[1], missing, dtype=np.float64)
        start, end = self._lookup.indptr[i], self._lookup.indptr[i + 1]
        r[self._lookup.indices[start:end]] = self._data[self._lookup.data[start:end] - 1]
        return r

    def submatrix(self, rows, cols=None, missing=np.nan):
        rows = np.asarray(rows)
        cols = rows if cols is None else np.asarray(cols)
        sub = self._lookup[rows][:, cols].tocoo()
        m = np.full((len(rows), len(cols)), missing, dtype=np.float64)
        m[sub.row, sub.col] = self._data[sub.data - 1]
        return m

    def to_dense(self, missing=np.nan):
        m = np.full(self._shape, missing, dtype=np.float64)
        m[self._rows, self._cols] = self._data
        return m

    def computed_mask(self):
        m = np.zeros(self._shape, dtype=bool)
        m[self._rows, self._cols] = True
        return m

    def is_symmetric(self, tolerance=1e-8):
        if self._shape[0] != self._shape[1]:
            return False
        if self.nnz == 0:
            return True
        pos = self._positions(self._cols, self._rows)
        if np.any(pos < 0):
            return False
        return np.allclose(self._data, self._data[pos], atol=tolerance, rtol=0, equal_nan=True)

    def __repr__(self):
        return 'SparseMatrix(shape={}, computed={})'.format(self.shape, self.nnz)


def as_matrix(x):
    """
    Wrap the argument as a DenseMatrix or SparseMatrix.

    ndarrays and DataFrames become DenseMatrix (NaN = not computed); scipy
    sparse matrices become SparseMatrix where stored entries are computed.
    """
    if isinstance(x, (DenseMatrix, SparseMatrix)):
        return x
    if scipy.sparse.issparse(x):
        coo = scipy.sparse.coo_matrix(x)
        return SparseMatrix(coo.row, coo.col, coo.data, coo.shape)
    if isinstance(x, pd.DataFrame):
        x = x.values
    return DenseMatrix(x)


def check_distance_matrix(matrix, name='distance matrix', stage=None, tolerance=1e-8):
    """Raise ParameterError unless the matrix is square, symmetric and non-negative."""
    n_rows, n_cols = matrix.shape
    if n_rows != n_cols:
        raise ParameterError('{} must be square, got shape {}'.format(name, matrix.shape), stage=stage)
    if matrix.kind == 'dense':
        values = matrix.values[~np.isnan(matrix.values)]
    else:
        values = matrix.entries()[2]
    if np.any(values < 0):
        raise ParameterError('{} must be non-negative'.format(name), stage=stage)
    if not matrix.is_symmetric(tolerance):
        raise ParameterError('{} must be symmetric'.format(name), stage=stage)
