"""Main CLI entry point for mvndeptree."""

import argparse
import logging
import sys
from typing import List, Optional

from . import __version__
from .formatters import OutputFormatter
from .models import ConflictingMetadata, CsvFormatError, MalformedCoordinate
from .parsers import DEFAULT_EXCLUDED_GROUPS, FileParser
from .tables import LibraryTable, VersionTable, build_dependency_rows, merge_all

logger = logging.getLogger(__name__)

LOG_LEVELS = ['DEBUG', 'INFO', 'WARNING', 'ERROR']


def setup_logging(verbose: bool = False, log_level: Optional[str] = None):
    """Configure logging based on verbosity flags."""
    if log_level:
        level = getattr(logging, log_level.upper(), logging.WARNING)
    elif verbose:
        level = logging.INFO
    else:
        level = logging.WARNING

    logging.basicConfig(
        level=level,
        format='%(levelname)s: %(message)s'
    )


def load_tables(library_path: Optional[str], version_path: Optional[str]):
    """Build the reference tables from the optional seed CSV files."""
    libraries = []
    if library_path:
        libraries = FileParser.parse_libraries_file(library_path)
    versions = []
    if version_path:
        versions = FileParser.parse_versions_file(version_path)
    return LibraryTable(libraries), VersionTable(versions)


def merge_dependency_file(path: str, library_table: LibraryTable, version_table: VersionTable) -> None:
    """Fold one dependency report into both tables, libraries first."""
    dependencies = FileParser.parse_dependencies_file(path)
    merge_all(dependencies, library_table, source=path)
    merge_all(dependencies, version_table, source=path)


def handle_scan(args) -> int:
    """Handle the 'scan' subcommand."""
    if args.exclude or args.no_default_excludes:
        excluded = list(args.exclude or [])
    else:
        excluded = list(DEFAULT_EXCLUDED_GROUPS)
    logger.info(f"Excluded group fragments: {', '.join(excluded) or 'none'}")

    library_table, version_table = load_tables(args.lin, args.vin)
    for store in args.store or []:
        merge_dependency_file(store, library_table, version_table)

    coordinates = FileParser.parse_tree_file(args.tree, excluded)
    if args.output_format == 'purl':
        output = OutputFormatter.format_as_purl_list(coordinates)
    else:
        rows = build_dependency_rows(coordinates, library_table, version_table)
        logger.info(f"Writing {len(rows)} dependency rows")
        output = OutputFormatter.format_dependencies(rows)
    OutputFormatter.write(output, args.csv)
    return 0


def handle_merge(args) -> int:
    """Handle the 'merge' subcommand."""
    library_table, version_table = load_tables(args.lin, args.vin)
    for dependency_file in args.reports:
        merge_dependency_file(dependency_file, library_table, version_table)
    logger.info(f"Tables hold {len(library_table)} libraries and {len(version_table)} versions")

    libraries_output = OutputFormatter.format_libraries(library_table.libraries())
    versions_output = OutputFormatter.format_versions(version_table.versions())
    OutputFormatter.write_all([(libraries_output, args.lout), (versions_output, args.vout)])
    return 0


def _add_logging_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument('-v', '--verbose', action='store_true',
                        help='Verbose output')
    parser.add_argument('--loglevel', choices=LOG_LEVELS,
                        help='Set log level')


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='mvndeptree',
        description='Direct dependency reports from Maven dependency:tree output'
    )
    parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}')

    subparsers = parser.add_subparsers(dest='command', help='Subcommands')

    # Scan command
    scan_parser = subparsers.add_parser('scan', help='Report the direct dependencies of a dependency:tree dump')
    scan_parser.add_argument('--tree', default='-',
                             help='mvn dependency:tree file (default: stdin)')
    scan_parser.add_argument('--csv', default='-',
                             help='Direct dependency CSV file (default: stdout)')
    scan_parser.add_argument('--lin', help='Input library CSV')
    scan_parser.add_argument('--vin', help='Input version CSV')
    scan_parser.add_argument('--store', action='append', metavar='CSV',
                             help='Previous dependency CSV to take versions from (repeatable)')
    scan_parser.add_argument('--exclude', action='append', metavar='FRAGMENT',
                             help='Group ID fragment whose subtree is walked into instead of reported '
                                  f'(repeatable). Default: {", ".join(DEFAULT_EXCLUDED_GROUPS)}')
    scan_parser.add_argument('--no-default-excludes', action='store_true',
                             help='Do not exclude the default group ID fragments')
    scan_parser.add_argument('--format', dest='output_format', default='csv',
                             choices=['csv', 'purl'],
                             help='Output format (csv, purl). Default: csv')
    _add_logging_arguments(scan_parser)
    scan_parser.set_defaults(func=handle_scan)

    # Merge command
    merge_parser = subparsers.add_parser('merge', help='Fold dependency reports into library and version tables')
    merge_parser.add_argument('reports', nargs='*', metavar='REPORT',
                              help='Dependency CSV files, merged in order')
    merge_parser.add_argument('--lin', help='Input library CSV')
    merge_parser.add_argument('--vin', help='Input version CSV')
    merge_parser.add_argument('--lout', required=True, help='Output library CSV')
    merge_parser.add_argument('--vout', required=True, help='Output version CSV')
    _add_logging_arguments(merge_parser)
    merge_parser.set_defaults(func=handle_merge)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    setup_logging(args.verbose, args.loglevel)

    try:
        return args.func(args)
    except (MalformedCoordinate, ConflictingMetadata, CsvFormatError, UnicodeDecodeError, OSError) as e:
        logger.error(f"{args.command} failed: {e}")
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == '__main__':
    sys.exit(main())
