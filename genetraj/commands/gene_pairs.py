#!/usr/bin/env python
# -*- coding: utf-8 -*-

import argparse

import genetraj.commands
import genetraj.io
import genetraj.ot


def create_parser():
    parser = argparse.ArgumentParser(
        description='Select gene pairs to compute at full resolution from meta-cell gene distances')
    parser.add_argument('--gene_distance', help=genetraj.commands.GENE_DISTANCE_HELP, required=True)
    parser.add_argument('--gene_k', help='Neighborhood size of the gene graph', type=int, default=10)
    parser.add_argument('--alpha', help='Multiplier on gene_k', type=int, default=10)
    parser.add_argument('--out', help='Output file name', default='genetraj-gene-pairs')
    genetraj.commands.add_verbose_argument(parser)
    return parser


def main(args):
    genetraj.commands.configure_logging(args)
    matrix, gene_names = genetraj.io.read_distance_matrix(args.gene_distance)
    pairs = genetraj.ot.select_gene_pairs(matrix, k=args.gene_k, alpha=args.alpha)
    genetraj.io.write_gene_pairs(pairs, gene_names, args.out)
