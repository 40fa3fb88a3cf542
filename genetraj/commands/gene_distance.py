#!/usr/bin/env python
# -*- coding: utf-8 -*-

import argparse
import logging

import genetraj.commands
import genetraj.io
import genetraj.ot

logger = logging.getLogger('genetraj')


def create_parser():
    parser = argparse.ArgumentParser(description='Compute gene-gene Wasserstein distances over the cell graph')
    genetraj.commands.add_model_arguments(parser)
    parser.add_argument('--gene_pairs',
                        help='Two column file of gene ids. Only these pairs are computed, over all cells')
    parser.add_argument('--format', help='Output file format', default='txt',
                        choices=genetraj.commands.DISTANCE_FORMAT_CHOICES)
    parser.add_argument('--out', help='Output file name', default='genetraj-gene-distance')
    genetraj.commands.add_verbose_argument(parser)
    return parser


def main(args):
    genetraj.commands.configure_logging(args)
    model = genetraj.commands.initialize_model_from_args(args)
    if args.gene_pairs is not None:
        pairs = genetraj.io.read_gene_pairs(args.gene_pairs, model.gene_names)
        cost = model.graph_distance()
        gene_distance = genetraj.ot.compute_gene_distance(model.expression(), cost, gene_names=model.gene_names,
                                                          gene_pairs=pairs, solver=model.config['solver'],
                                                          processes=model.config['processes'],
                                                          **model.solver_params())
    else:
        gene_distance, _ = model.compute_gene_distance()
    path = genetraj.io.write_distance_matrix(gene_distance.matrix, gene_distance.gene_names, args.out,
                                             output_format=args.format)
    logger.info('Wrote ' + path)
    if len(gene_distance.failed_pairs) > 0:
        path = genetraj.io.write_gene_pairs(gene_distance.failed_pairs, gene_distance.gene_names,
                                            args.out + '_not_converged')
        logger.info('Wrote gene pairs that did not converge to ' + path)
