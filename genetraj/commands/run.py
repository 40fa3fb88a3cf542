#!/usr/bin/env python
# -*- coding: utf-8 -*-

import argparse
import logging

import genetraj.commands
import genetraj.io

logger = logging.getLogger('genetraj')


def create_parser():
    parser = argparse.ArgumentParser(description='Run the gene trajectory pipeline from an expression matrix')
    genetraj.commands.add_model_arguments(parser)
    genetraj.commands.add_gene_trajectory_arguments(parser)
    parser.add_argument('--format', help='Distance matrix file format', default='txt',
                        choices=genetraj.commands.DISTANCE_FORMAT_CHOICES)
    parser.add_argument('--write_cell_distance', help='Also write the cell-cell graph distance matrix',
                        action='store_true')
    parser.add_argument('--out', help='Prefix for output file names', default='genetraj')
    genetraj.commands.add_verbose_argument(parser)
    return parser


def main(args):
    genetraj.commands.configure_logging(args)
    model = genetraj.commands.initialize_model_from_args(args)
    result = model.run()
    if args.write_cell_distance:
        genetraj.io.write_distance_matrix(result.graph_distance, model.cell_names, args.out + '_cell_distance',
                                          output_format=args.format)
    genetraj.io.write_distance_matrix(result.gene_distance.matrix, result.gene_distance.gene_names,
                                      args.out + '_gene_distance', output_format=args.format)
    genetraj.io.write_embedding(result.gene_embedding, args.out + '_gene_embedding')
    path = genetraj.io.write_gene_trajectory(result.gene_trajectory, args.out + '_gene_trajectory')
    for name in result.gene_trajectory.names:
        logger.info('{}: {} genes'.format(name, len(result.gene_trajectory.trajectory(name).genes)))
    logger.info('Wrote ' + path)
