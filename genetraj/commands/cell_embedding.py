#!/usr/bin/env python
# -*- coding: utf-8 -*-

import argparse

import genetraj.commands
import genetraj.diffusion_map
import genetraj.io


def create_parser():
    parser = argparse.ArgumentParser(description='Compute a cell diffusion map embedding from principal components')
    parser.add_argument('--matrix', help=genetraj.commands.MATRIX_HELP, required=True)
    parser.add_argument('--transpose', help='Transpose the matrix', action='store_true')
    parser.add_argument('--cell_filter', help='File with one cell id per line to include from the matrix')
    parser.add_argument('--pca_comps', help='Number of PCA components', type=int, default=30)
    parser.add_argument('--n_components', help='Number of diffusion components', type=int, default=10)
    parser.add_argument('--k', help='Neighbor rank setting the adaptive kernel bandwidth', type=int, default=10)
    parser.add_argument('--sigma', help='Fixed kernel bandwidth', type=float)
    parser.add_argument('--out', help='Output file name', default='genetraj-cell-embedding')
    genetraj.commands.add_verbose_argument(parser)
    return parser


def main(args):
    genetraj.commands.configure_logging(args)
    ds = genetraj.io.read_dataset(args.matrix)
    if args.transpose:
        ds = ds.T
    ds = genetraj.io.filter_adata(ds, obs_filter=args.cell_filter)
    x = genetraj.diffusion_map.pca(ds.X, n_components=args.pca_comps)
    embedding = genetraj.diffusion_map.cell_diffusion_map(x, n_components=args.n_components, k=args.k,
                                                          sigma=args.sigma, names=ds.obs.index.values)
    genetraj.io.write_embedding(embedding, args.out)
