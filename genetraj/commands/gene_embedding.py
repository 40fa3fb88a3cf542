#!/usr/bin/env python
# -*- coding: utf-8 -*-

import argparse

import genetraj.commands
import genetraj.diffusion_map
import genetraj.io

from genetraj.commands.util import get_parameter


def create_parser():
    parser = argparse.ArgumentParser(description='Compute a gene diffusion map embedding from gene distances')
    parser.add_argument('--gene_distance', help=genetraj.commands.GENE_DISTANCE_HELP, required=True)
    parser.add_argument('--gene_components', type=int, help='Number of gene diffusion components')
    parser.add_argument('--gene_k', type=int, help='Neighbor rank setting the adaptive kernel bandwidth')
    parser.add_argument('--sigma', type=float, help='Fixed kernel bandwidth, adaptive when omitted')
    parser.add_argument('--t', type=int, help='Diffusion time')
    parser.add_argument('--out', help='Output file name', default='genetraj-gene-embedding')
    genetraj.commands.add_verbose_argument(parser)
    return parser


def compute_gene_embedding(args, matrix, gene_names):
    return genetraj.diffusion_map.diffusion_map(matrix, n_components=get_parameter(args, 'gene_components'),
                                                k=get_parameter(args, 'gene_k'), sigma=get_parameter(args, 'sigma'),
                                                t=get_parameter(args, 't'), names=gene_names)


def main(args):
    genetraj.commands.configure_logging(args)
    matrix, gene_names = genetraj.io.read_distance_matrix(args.gene_distance)
    genetraj.io.write_embedding(compute_gene_embedding(args, matrix, gene_names), args.out)
