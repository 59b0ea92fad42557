"""Parsers for Maven dependency:tree output and the reference CSV files."""

import csv
import io
import logging
import sys
from dataclasses import dataclass
from typing import IO, Iterable, List, Optional, Set

from .models import (
    Coordinate,
    CsvFormatError,
    Dependency,
    Library,
    MalformedCoordinate,
    VersionRecord,
    accepted_widths,
)

logger = logging.getLogger(__name__)

INFO_PREFIX = "[INFO] "
CONTINUATION_MARKERS = ("|  ", "   ")
BRANCH_MARKERS = ("+- ", "\\- ")

# Group ID fragments of our own modules. Their subtrees are walked one level
# deep so the third-party libraries they pull in count as direct dependencies.
DEFAULT_EXCLUDED_GROUPS = ("com.sunnylabs", "com.wavefront")


@dataclass(frozen=True)
class TreeEntry:
    """One node of a dependency:tree dump."""

    name: str
    level: int


def classify_line(line: str) -> Optional[TreeEntry]:
    """
    Turn one line of dependency:tree output into a tree entry.

    Example:
        "[INFO] |  \\- org.slf4j:slf4j-api:jar:1.7.36:compile"
        -> TreeEntry("org.slf4j:slf4j-api:jar:1.7.36:compile", 2)

    Args:
        line: Raw line, with or without its trailing newline

    Returns:
        TreeEntry, or None if the line is not a tree node
    """
    line = line.rstrip("\r\n")
    if not line.startswith(INFO_PREFIX):
        return None
    line = line[len(INFO_PREFIX):]
    level = 1
    while line.startswith(CONTINUATION_MARKERS):
        level += 1
        line = line[3:]
    if not line.startswith(BRANCH_MARKERS):
        return None
    return TreeEntry(name=line[3:], level=level)


class DependencyTreeScanner:
    """
    Collects the direct dependencies out of a dependency:tree dump.

    The scanner keeps a frontier level. Entries deeper than the frontier
    belong to a subtree that has already been accepted and are dropped.
    An excluded entry moves the frontier one level below itself, so its
    children are considered in its place while its grandchildren are still
    dropped.
    """

    def __init__(self, excluded: Iterable[str] = DEFAULT_EXCLUDED_GROUPS):
        self.excluded = tuple(excluded)
        self.scan_level = 1
        self.names: Set[str] = set()

    def scan(self, line: str) -> None:
        """Feed one line of dependency:tree output to the scanner."""
        entry = classify_line(line)
        if entry is None:
            return
        self.scan_entry(entry)

    def scan_entry(self, entry: TreeEntry) -> None:
        if entry.level > self.scan_level:
            return
        self.scan_level = entry.level
        if any(fragment in entry.name for fragment in self.excluded):
            logger.debug(f"Walking into excluded entry at level {entry.level}: {entry.name}")
            self.scan_level += 1
            return
        self.names.add(entry.name)

    def scan_lines(self, lines: Iterable[str]) -> 'DependencyTreeScanner':
        for line in lines:
            self.scan(line)
        return self

    def dependencies(self) -> List[str]:
        """Return the direct dependency coordinates, sorted as raw strings."""
        return sorted(self.names)


def parse_coordinate(text: str) -> Coordinate:
    """
    Parse a group:artifact:packaging:version:scope coordinate.

    Anything after the fourth colon belongs to the scope field.

    Raises:
        MalformedCoordinate: If fewer than 5 fields are present
    """
    fields = text.split(':', 4)
    if len(fields) < 5:
        raise MalformedCoordinate(text)
    return Coordinate(*fields)


def parse_coordinates(texts: Iterable[str]) -> List[Coordinate]:
    return [parse_coordinate(text) for text in texts]


def read_csv(stream: IO[str], record_type, path: Optional[str] = None) -> list:
    """
    Read records of one schema from a CSV stream.

    The first row is the title row. Its width must be one the record type
    accepts; every following row must have the same width.

    Args:
        stream: Text stream positioned at the title row
        record_type: Library, VersionRecord or Dependency
        path: File name used in error messages

    Returns:
        List of record_type instances in file order
    """
    reader = csv.reader(stream)
    title = next(reader, None)
    if title is None:
        raise CsvFormatError("missing title row", path, 1)
    widths = accepted_widths(record_type)
    if len(title) not in widths:
        raise CsvFormatError(
            f"title row has {len(title)} columns, expected {' or '.join(str(w) for w in widths)}",
            path, reader.line_num)
    records = []
    for row in reader:
        if len(row) != len(title):
            raise CsvFormatError(
                f"row has {len(row)} fields, title row has {len(title)}", path, reader.line_num)
        records.append(record_type.from_row(row))
    return records


class FileParser:
    """Reads tree dumps and reference tables from files."""

    @staticmethod
    def open_input(path: Optional[str]) -> IO[str]:
        """
        Open a tree dump for reading; None or '-' means standard input.

        Bytes that are not UTF-8 decode to U+FFFD instead of failing.
        """
        if not path or path == '-':
            buffer = getattr(sys.stdin, 'buffer', None)
            if buffer is None:
                return sys.stdin
            return io.TextIOWrapper(buffer, encoding='utf-8', errors='replace')
        return open(path, 'r', encoding='utf-8', errors='replace')

    @staticmethod
    def parse_tree_file(path: Optional[str], excluded: Iterable[str] = DEFAULT_EXCLUDED_GROUPS) -> List[Coordinate]:
        """
        Parse a dependency:tree dump into its direct dependencies.

        Args:
            path: Tree file, or None/'-' for standard input
            excluded: Group ID fragments whose subtrees are walked into

        Returns:
            Direct dependency coordinates, sorted by their raw text
        """
        scanner = DependencyTreeScanner(excluded)
        stream = FileParser.open_input(path)
        from_stdin = not path or path == '-'
        try:
            scanner.scan_lines(stream)
        finally:
            if not from_stdin:
                stream.close()
            elif stream is not sys.stdin:
                # Leave the process's stdin open
                stream.detach()
        names = scanner.dependencies()
        logger.info(f"Found {len(names)} direct dependencies in {path or 'stdin'}")
        return parse_coordinates(names)

    @staticmethod
    def _parse_csv_file(path: str, record_type) -> list:
        with open(path, 'r', encoding='utf-8', newline='') as f:
            records = read_csv(f, record_type, path)
        logger.info(f"Read {len(records)} {record_type.__name__} rows from {path}")
        return records

    @staticmethod
    def parse_libraries_file(path: str) -> List[Library]:
        return FileParser._parse_csv_file(path, Library)

    @staticmethod
    def parse_versions_file(path: str) -> List[VersionRecord]:
        return FileParser._parse_csv_file(path, VersionRecord)

    @staticmethod
    def parse_dependencies_file(path: str) -> List[Dependency]:
        """Parse a dependency report in either the merge or the enrichment layout."""
        return FileParser._parse_csv_file(path, Dependency)
