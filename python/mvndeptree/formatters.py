"""Output formatters for dependency reports and reference tables."""

import csv
import io
import logging
import os
import tempfile
from typing import Collection, Iterable, List, Sequence, Tuple

from .models import Coordinate, Dependency, Library, VersionRecord

logger = logging.getLogger(__name__)


class OutputFormatter:
    """Renders records as text. Callers decide the record order."""

    @staticmethod
    def format_as_csv(columns: Sequence[str], rows: Iterable[Sequence[str]]) -> str:
        """Render a title row followed by one CSV line per row."""
        buffer = io.StringIO()
        writer = csv.writer(buffer, lineterminator='\n')
        writer.writerow(columns)
        writer.writerows(rows)
        return buffer.getvalue()

    @staticmethod
    def format_libraries(libraries: Iterable[Library]) -> str:
        return OutputFormatter.format_as_csv(Library.COLUMNS, (lib.to_row() for lib in libraries))

    @staticmethod
    def format_versions(versions: Iterable[VersionRecord]) -> str:
        return OutputFormatter.format_as_csv(VersionRecord.COLUMNS, (v.to_row() for v in versions))

    @staticmethod
    def format_dependencies(dependencies: Iterable[Dependency]) -> str:
        """Render an enrichment report with all seven columns."""
        return OutputFormatter.format_as_csv(Dependency.COLUMNS, (d.to_row() for d in dependencies))

    @staticmethod
    def format_as_purl_list(coordinates: Collection[Coordinate]) -> str:
        """Format coordinates as a list of Package URLs, one per line."""
        lines: List[str] = [coordinate.purl for coordinate in coordinates]
        return "\n".join(lines) + "\n" if lines else ""

    @staticmethod
    def write(output: str, path: str) -> None:
        """Write rendered output to path, or to stdout when path is '-'."""
        if not path or path == '-':
            print(output, end='')
            return
        with open(path, 'w', encoding='utf-8', newline='') as f:
            f.write(output)
        logger.info(f"Output written to: {path}")

    @staticmethod
    def write_all(outputs: Sequence[Tuple[str, str]]) -> None:
        """
        Write several rendered outputs so that either every file is created or none is.

        Each output is first written to a temporary file beside its target.
        The targets are only replaced once all temporary files are complete.

        Args:
            outputs: (rendered output, path) pairs; '-' means stdout
        """
        staged = []
        to_stdout = []
        umask = os.umask(0)
        os.umask(umask)
        try:
            for output, path in outputs:
                if not path or path == '-':
                    to_stdout.append(output)
                    continue
                directory = os.path.dirname(os.path.abspath(path))
                fd, temp_path = tempfile.mkstemp(dir=directory, prefix='.mvndeptree-', suffix='.tmp')
                staged.append((temp_path, path))
                with os.fdopen(fd, 'w', encoding='utf-8', newline='') as f:
                    f.write(output)
                # mkstemp creates files readable by the owner only
                os.chmod(temp_path, 0o666 & ~umask)
        except OSError:
            for temp_path, _ in staged:
                os.unlink(temp_path)
            raise
        for temp_path, path in staged:
            os.replace(temp_path, path)
            logger.info(f"Output written to: {path}")
        for output in to_stdout:
            print(output, end='')
