#!/usr/bin/env python
# -*- coding: utf-8 -*-

import argparse
import sys

from genetraj.commands import cell_embedding, gene_distance, gene_embedding, gene_pairs, gene_trajectory, \
    graph_distance, run


def main():
    command_list = [cell_embedding, gene_distance, gene_embedding, gene_pairs, gene_trajectory, graph_distance, run]
    tool_parser = argparse.ArgumentParser(description='Run a genetraj command')
    command_list_strings = list(map(lambda x: x.__name__[len('genetraj.commands.'):], command_list))
    tool_parser.add_argument('command', help='The genetraj command', choices=command_list_strings)
    tool_parser.add_argument('command_args', help='The command arguments', nargs=argparse.REMAINDER)
    genetraj_args = tool_parser.parse_args()
    command_name = genetraj_args.command
    command_args = genetraj_args.command_args
    cmd = command_list[command_list_strings.index(command_name)]
    sys.argv[0] = cmd.__file__
    parser = cmd.create_parser()
    args = parser.parse_args(command_args)
    cmd.main(args)


if __name__ == '__main__':
    main()
