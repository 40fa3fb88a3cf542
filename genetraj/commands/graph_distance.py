#!/usr/bin/env python
# -*- coding: utf-8 -*-

import argparse

import genetraj.commands
import genetraj.graph_distance
import genetraj.io


def create_parser():
    parser = argparse.ArgumentParser(description='Compute cell-cell shortest path distances over a kNN graph')
    parser.add_argument('--embedding', help=genetraj.commands.EMBEDDING_HELP, required=True)
    parser.add_argument('--dims', help='Number of embedding dimensions to use, all when omitted', type=int)
    parser.add_argument('--k', help='Number of nearest neighbors', type=int, default=10)
    parser.add_argument('--max_components', help='Maximum number of connected components tolerated', type=int,
                        default=1)
    parser.add_argument('--processes', help='Number of worker processes', type=int, default=1)
    parser.add_argument('--format', help='Output file format', default='txt',
                        choices=genetraj.commands.DISTANCE_FORMAT_CHOICES)
    parser.add_argument('--out', help='Output file name', default='genetraj-cell-distance')
    genetraj.commands.add_verbose_argument(parser)
    return parser


def main(args):
    genetraj.commands.configure_logging(args)
    df = genetraj.io.read_embedding(args.embedding)
    x = df.values if args.dims is None else df.values[:, :args.dims]
    distances = genetraj.graph_distance.graph_distance(x, k=args.k, max_components=args.max_components,
                                                       processes=args.processes)
    genetraj.io.write_distance_matrix(distances, df.index.values, args.out, output_format=args.format)
