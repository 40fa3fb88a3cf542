#!/usr/bin/env python
# -*- coding: utf-8 -*-

import argparse

import genetraj.commands
import genetraj.io
import genetraj.trajectory
from genetraj.commands.gene_embedding import compute_gene_embedding
from genetraj.errors import ParameterError

from genetraj.commands.util import get_parameter


def create_parser():
    parser = argparse.ArgumentParser(description='Extract gene trajectories from a gene embedding')
    parser.add_argument('--gene_distance', help=genetraj.commands.GENE_DISTANCE_HELP, required=True)
    parser.add_argument('--gene_embedding', help='Gene embedding as produced by gene_embedding. ' +
                                                 'Computed from the gene distances when omitted')
    genetraj.commands.add_gene_trajectory_arguments(parser)
    parser.add_argument('--out', help='Output file name', default='genetraj-gene-trajectory')
    genetraj.commands.add_verbose_argument(parser)
    return parser


def main(args):
    genetraj.commands.configure_logging(args)
    matrix, gene_names = genetraj.io.read_distance_matrix(args.gene_distance)
    if args.gene_embedding is not None:
        df = genetraj.io.read_embedding(args.gene_embedding)
        df.index = df.index.astype(str)
        missing = [name for name in gene_names if name not in df.index]
        if missing:
            raise ParameterError('{} genes have no embedding in {}: {}'.format(
                len(missing), args.gene_embedding, missing[:10]), stage='gene_trajectory')
        embedding = df.loc[list(gene_names)].values
    else:
        embedding = compute_gene_embedding(args, matrix, gene_names).coordinates
    result = genetraj.trajectory.extract_gene_trajectories(embedding, matrix,
                                                           get_parameter(args, 'n_trajectories'),
                                                           get_parameter(args, 't_list'),
                                                           k=get_parameter(args, 'gene_k'),
                                                           dims=get_parameter(args, 'dims'),
                                                           quantile=get_parameter(args, 'quantile'),
                                                           gene_names=gene_names)
    genetraj.io.write_gene_trajectory(result, args.out)
