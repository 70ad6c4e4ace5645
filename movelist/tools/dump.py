#!/usr/bin/env python3
"""
Dump a move-list file.

Decodes any supported encoding and prints a summary, the decoded table as
YAML, or converts it to the native format.

Usage:
    movelist_dump character.dat
    movelist_dump character.ha6 --yaml --sequence 12
    movelist_dump character.dat --extract-image cg.bin --save out.ha6
"""

import argparse
import logging
import sys

import yaml

from movelist.config import load_config
from movelist.commands import load_commands
from movelist.loader import FrameDataLoader
from movelist.formats.writer import save


def print_summary(result):
    """Print a one-screen overview of a decode result."""
    table = result.table
    print(f'File: {result.name}')
    print(f'Format: {result.format.value}')
    print(f'Success: {result.success}')
    print(f'Sequences: {table.loaded_count()} loaded / {len(table)} slots')
    if result.embedded_image:
        print(f'Embedded image: {len(result.embedded_image)} bytes')
    print()

    for i, seq in enumerate(table):
        if seq.empty:
            continue
        print(f'  {table.decorated_name(i)}  ({seq.frame_count} frames)')


def print_diagnostics(result, limit: int):
    entries = result.diagnostics.get_logs(limit=limit)
    if not entries:
        return
    print()
    print(f'Diagnostics ({len(result.diagnostics)} kept):')
    for entry in reversed(entries):
        print(f"  [{entry['level']}] {entry['kind']}: {entry['text']}")


def main(argv=None):
    """Main entry point."""
    parser = argparse.ArgumentParser(description='Decode and dump a move-list file')
    parser.add_argument('path', help='Move-list file (.ha6, .ha4 or .dat)')
    parser.add_argument('--config', help='Loader config YAML (default: bundled loader_config.yaml)')
    parser.add_argument('--yaml', action='store_true', help='Print the decoded table as YAML')
    parser.add_argument('--sequence', type=int, help='Only dump this sequence index')
    parser.add_argument('--commands', help='Command list used to name unnamed sequences')
    parser.add_argument('--extract-image', metavar='PATH', help='Write the embedded image blob to PATH')
    parser.add_argument('--save', metavar='PATH', help='Re-encode in the native format to PATH')
    parser.add_argument('--diagnostics', type=int, default=20, help='Number of diagnostic lines to show')
    parser.add_argument('--verbose', '-v', action='store_true', help='Log decoder debug output')

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format='%(levelname)s %(name)s: %(message)s',
    )
    logger = logging.getLogger('movelist')

    config = load_config(args.config)
    if args.verbose:
        config.logging.verbose = True

    loader = FrameDataLoader(config=config, logger=logger)
    try:
        result = loader.load(args.path)
    except FileNotFoundError as e:
        print(f'Error: {e}', file=sys.stderr)
        return 1

    if not result.success:
        print(f'Error: could not decode {args.path} ({result.format.value})', file=sys.stderr)
        print_diagnostics(result, args.diagnostics)
        return 1

    if args.commands:
        try:
            load_commands(args.commands, result.table, logger=logger)
        except FileNotFoundError as e:
            print(f'Warning: {e}', file=sys.stderr)

    if args.yaml:
        if args.sequence is not None:
            seq = result.table.get(args.sequence)
            if seq is None:
                print(f'Error: no sequence {args.sequence}', file=sys.stderr)
                return 1
            data = {args.sequence: seq.to_dict()}
        else:
            data = result.table.to_dict()
        print(yaml.safe_dump(data, allow_unicode=True, sort_keys=False))
    else:
        print_summary(result)
        print_diagnostics(result, args.diagnostics)

    if args.extract_image:
        if result.embedded_image is None:
            print('Warning: file has no embedded image', file=sys.stderr)
        else:
            with open(args.extract_image, 'wb') as f:
                f.write(result.embedded_image)
            print(f'Wrote {len(result.embedded_image)} bytes to {args.extract_image}')

    if args.save:
        save(result.table, args.save)
        print(f'Saved native file to {args.save}')

    return 0


if __name__ == '__main__':
    sys.exit(main())
