"""
gamemap - inspect and convert game map files

Usage:
    python -m gamemap --formats
    python -m gamemap [--debug] <command> [args] [<command> [args] ...]

Commands run left to right on a single open map:

    open -f <format> <file> [--supp id=file ...]
        Open <file> as a map in format <format>.  Supplementary files the
        format needs can be named with --supp.

    info | dump
        Display information about the opened map.

    text <layer>
        Print a layer: tiled layers as a grid of hex codes ('.' = no tile),
        list layers as one line per item.

    save <file> [--supp id=file ...]
        Write the current map, in its original format, to <file>.

Examples:
    python -m gamemap open -f map-cosmo a1.mni info
    python -m gamemap open -f map-ddave level01.dav --supp enemy=enemy.bin \\
        text 1 save out.dav --supp enemy=enemy-out.bin

Set GAMEMAP_LOG_LEVEL=DEBUG (or pass --debug) for troubleshooting.

Exit status: 0 on success, 1 on a usage error, 2 if an operation failed.
"""

import argparse
import logging
import sys
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Dict, List, Optional

from .errors import GameMapError
from .formats import find_handler, list_formats
from .log_utils import setup_logging
from .map import ListLayer, Map2D, TiledLayer

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_USAGE = 1
EXIT_FAILED = 2


class UsageError(Exception):
    """Bad command line."""


class OperationsError(Exception):
    """A command could not be carried out."""


class _Parser(argparse.ArgumentParser):
    """ArgumentParser that raises instead of exiting."""

    def error(self, message):
        raise UsageError(f"{self.prog}: {message}")


def _parse_supps(pairs: Optional[List[str]]) -> Dict[str, Path]:
    supps = {}
    for pair in pairs or []:
        supp_id, sep, filename = pair.partition('=')
        if not sep or not supp_id or not filename:
            raise UsageError(f"--supp expects id=filename, got '{pair}'.")
        supps[supp_id] = Path(filename)
    return supps


# =============================================================================
# FILE I/O
# =============================================================================

def read_files(paths: Dict[str, Path]) -> Dict[str, bytes]:
    """Read every file at once.  Any failure fails the whole read."""
    content = {}
    with ThreadPoolExecutor() as pool:
        futures = {key: pool.submit(path.read_bytes) for key, path in paths.items()}
        for key, future in futures.items():
            try:
                content[key] = future.result()
            except OSError as e:
                raise OperationsError(
                    f"Unable to read \"{paths[key]}\": {e.strerror or e}"
                ) from e
    return content


def write_files(content: Dict[str, bytes], paths: Dict[str, Path]):
    """Write content[key] to paths[key] for every key, all at once."""
    with ThreadPoolExecutor() as pool:
        futures = {
            key: pool.submit(paths[key].write_bytes, data)
            for key, data in content.items()
        }
        for key, future in futures.items():
            try:
                future.result()
            except OSError as e:
                raise OperationsError(
                    f"Unable to write \"{paths[key]}\": {e.strerror or e}"
                ) from e


# =============================================================================
# OPERATIONS
# =============================================================================

class Operations:
    """
    State shared by a chain of commands: the open map and its handler.

    Each command is a method taking its parsed argparse namespace.
    """

    def __init__(self, out=None):
        self.out = out if out is not None else sys.stdout
        self.map = None
        self.handler = None
        # Where each supplementary file came from, to save it back there.
        self.supp_paths: Dict[str, Path] = {}

    def _print(self, text: str = ""):
        print(text, file=self.out)

    def _require_map(self, command: str):
        if self.map is None:
            raise OperationsError(f"{command}: no map is open, use 'open' first.")

    # -------------------------------------------------------------------------
    # open / save
    # -------------------------------------------------------------------------

    def open(self, args):
        handler = find_handler(args.format)
        if handler is None:
            raise OperationsError(f"Invalid format code: {args.format}.")

        target = Path(args.target)
        data = read_files({'main': target})['main']

        supp_paths = {
            supp_id: Path(filename)
            for supp_id, filename in (handler.supps(str(target), data) or {}).items()
        }
        supp_paths.update(_parse_supps(args.supp))

        content = {'main': data}
        content.update(read_files(supp_paths))
        logger.debug("Opening %s as %s with supplementary data %s",
                     target, args.format, sorted(supp_paths))

        self.map = handler.parse(content)
        self.handler = handler
        self.supp_paths = supp_paths

    def save(self, args):
        self._require_map('save')

        problems = self.handler.check_limits(self.map)
        if problems:
            self._print("There are problems preventing the requested changes "
                        "from taking place:")
            self._print()
            for index, problem in enumerate(problems):
                self._print(f"{index + 1:2d}: {problem}")
            self._print()
            self._print("Please correct these issues and try again.")
            raise OperationsError("save: cannot save due to file format limitations.")

        target = Path(args.target)
        output = self.handler.generate(self.map)

        paths = {
            supp_id: Path(filename)
            for supp_id, filename in (self.handler.supps(str(target), output['main']) or {}).items()
        }
        for supp_id, path in self.supp_paths.items():
            paths.setdefault(supp_id, path)
        paths.update(_parse_supps(args.supp))
        paths['main'] = target

        for supp_id in output:
            if supp_id not in paths:
                raise OperationsError(
                    f"save: no filename for the supplementary data '{supp_id}', "
                    f"use --supp {supp_id}=<file>."
                )

        logger.info("Saving to %s", target)
        for supp_id in sorted(output):
            if supp_id != 'main':
                logger.info(" - Saving supplemental file \"%s\" to %s",
                            supp_id, paths[supp_id])
        write_files(output, paths)

    # -------------------------------------------------------------------------
    # info / text
    # -------------------------------------------------------------------------

    def info(self, args):
        self._require_map('info')
        m = self.map
        self._print(f"Map class: {type(m).__name__}")
        self._print("Common properties:")
        if m.paths is None:
            self._print(" * Number of paths: N/A (not supported by this format)")
        else:
            self._print(f" * Number of paths: {len(m.paths)}")

        if m.attributes:
            self._print("Attributes:")
            for attr_id, attr in m.attributes.items():
                self._print(f" * {attr_id} ({attr.title}): {attr.value!r}")

        if not isinstance(m, Map2D):
            self._print("Map type: Unknown")
            return

        self._print("Map type: 2D layered")
        if m.map_size is not None:
            self._print(f" * Map size: {m.map_size} tiles")
        if m.tile_size is not None:
            self._print(f" * Tile size: {m.tile_size} pixels")
        pixels = m.get_size()
        if pixels is not None:
            self._print(f" * Total size: {pixels} pixels")
        self._print(f" * Viewport: {m.viewport} pixels")
        self._print(f" * Number of layers: {len(m.layers)}")
        for index, layer in enumerate(m.layers):
            if isinstance(layer, TiledLayer):
                size = layer.effective_size(m.map_size) or layer.grid_size()
                detail = f"{size} tiles"
            else:
                detail = f"{len(layer.items)} items"
            self._print(f"   {index}: {layer.title} ({layer.kind}, {detail})")

    dump = info

    def text(self, args):
        self._require_map('text')
        layers = getattr(self.map, 'layers', [])
        if not 0 <= args.layer < len(layers):
            raise OperationsError(
                f"text: layer {args.layer} does not exist, this map has "
                f"{len(layers)} layers."
            )
        layer = layers[args.layer]
        if isinstance(layer, TiledLayer):
            for line in tile_grid_text(layer):
                self._print(line)
        elif isinstance(layer, ListLayer):
            for line in item_list_text(layer):
                self._print(line)


def _code_text(code) -> str:
    if code is None:
        return '.'
    if isinstance(code, int):
        return f"{code:x}"
    return str(code)


def tile_grid_text(layer: TiledLayer) -> List[str]:
    """Rows of space-separated hex codes, all padded to the same width."""
    cells = [[_code_text(code) for code in row] for row in layer.tiles]
    width = max((len(cell) for row in cells for cell in row), default=1)
    return [' '.join(cell.rjust(width) for cell in row) for row in cells]


def item_list_text(layer: ListLayer) -> List[str]:
    lines = []
    for index, item in enumerate(layer.items):
        line = f"{index}: code {item.code} at ({item.x}, {item.y})"
        if item.attribute_values:
            values = ', '.join(f"{k}={v!r}" for k, v in item.attribute_values.items())
            line += f" [{values}]"
        lines.append(line)
    return lines


# =============================================================================
# COMMAND LINE
# =============================================================================

def _command_parsers() -> Dict[str, argparse.ArgumentParser]:
    parsers = {}

    p = _Parser(prog='open', add_help=False)
    p.add_argument('-f', '--format', required=True, help='Format id, see --formats')
    p.add_argument('target', help='Map file to open')
    p.add_argument('--supp', action='append', metavar='ID=FILE')
    parsers['open'] = p

    p = _Parser(prog='save', add_help=False)
    p.add_argument('target', help='File to write')
    p.add_argument('--supp', action='append', metavar='ID=FILE')
    parsers['save'] = p

    parsers['info'] = _Parser(prog='info', add_help=False)
    parsers['dump'] = _Parser(prog='dump', add_help=False)

    p = _Parser(prog='text', add_help=False)
    p.add_argument('layer', type=int, help='Layer index')
    parsers['text'] = p

    return parsers


def split_commands(argv: List[str], names) -> List[List[str]]:
    """Split ['open', '-f', 'x', 'f', 'info'] into [['open', ...], ['info']]."""
    chunks = []
    for token in argv:
        if token in names or not chunks:
            chunks.append([token])
        else:
            chunks[-1].append(token)
    return chunks


def print_formats(out=None):
    out = out if out is not None else sys.stdout
    for md in list_formats():
        print(f"{md.id}: {md.title}", file=out)
        for name, description in md.params.items():
            print(f"  * {name}: {description}", file=out)


def main(argv: Optional[List[str]] = None) -> int:
    parser = _Parser(
        prog='gamemap',
        description=__doc__,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument('--formats', action='store_true',
                        help='List all available file formats')
    parser.add_argument('--debug', action='store_true',
                        help='Show debug messages')
    parser.add_argument('--color', action='store_true',
                        help='Colour log messages')
    parser.add_argument('commands', nargs=argparse.REMAINDER)
    try:
        args = parser.parse_args(argv)
    except UsageError as e:
        print(e, file=sys.stderr)
        return EXIT_USAGE

    setup_logging(logging.DEBUG if args.debug else None, color=args.color)

    if args.formats:
        print_formats()
        return EXIT_OK

    if not args.commands:
        parser.print_help()
        return EXIT_OK

    parsers = _command_parsers()
    proc = Operations()
    for chunk in split_commands(args.commands, parsers):
        name = chunk[0]
        if name not in parsers:
            print(f"Unknown command: {name}", file=sys.stderr)
            return EXIT_USAGE
        try:
            cmd_args = parsers[name].parse_args(chunk[1:])
            getattr(proc, name)(cmd_args)
        except UsageError as e:
            print(e, file=sys.stderr)
            return EXIT_USAGE
        except (OperationsError, GameMapError) as e:
            print(e, file=sys.stderr)
            return EXIT_FAILED
        except OSError as e:
            print(f"{name}: {e}", file=sys.stderr)
            return EXIT_FAILED

    return EXIT_OK
