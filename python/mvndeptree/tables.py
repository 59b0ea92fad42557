"""Library and version reference tables with conflict-checked merging."""

import logging
from dataclasses import replace
from typing import Dict, Iterable, List, Optional, Union

from .models import (
    ConflictingMetadata,
    Coordinate,
    Dependency,
    DependencyKey,
    Library,
    VersionRecord,
)

logger = logging.getLogger(__name__)


def _replace(record, key_name: str, field_name: str, value: str) -> None:
    """
    Set record.field_name to value unless it already holds a different value.

    Empty incoming values never overwrite anything.

    Raises:
        ConflictingMetadata: If both values are non-empty and differ
    """
    if not value:
        return
    existing = getattr(record, field_name)
    if not existing:
        setattr(record, field_name, value)
        return
    if existing != value:
        raise ConflictingMetadata(key=key_name, field=field_name, existing=existing, incoming=value)


class LibraryTable:
    """Libraries keyed by group:artifact name."""

    def __init__(self, libraries: Iterable[Library] = ()):
        self._libraries: Dict[str, Library] = {}
        for library in libraries:
            self._libraries[library.name] = replace(library)

    def __len__(self) -> int:
        return len(self._libraries)

    def __contains__(self, name: str) -> bool:
        return name in self._libraries

    def __eq__(self, other) -> bool:
        if not isinstance(other, LibraryTable):
            return NotImplemented
        return self._libraries == other._libraries

    def get(self, name: str) -> Library:
        """Return a copy of the library with this name, or an empty record."""
        library = self._libraries.get(name)
        if library is None:
            return Library(name=name)
        return replace(library)

    def merge(self, record: Union[Library, Dependency]) -> None:
        """
        Fold the library facts of a record into the table.

        Fields are merged in the order latest, new_location, description.
        A conflict stops the merge; fields merged before it stay applied.

        Args:
            record: Library or Dependency row carrying library facts

        Raises:
            ConflictingMetadata: If a stored value would change
        """
        if not record.name:
            return
        library = self._libraries.get(record.name)
        if library is None:
            library = Library(name=record.name)
            self._libraries[record.name] = library
        _replace(library, record.name, 'latest', record.latest)
        _replace(library, record.name, 'new_location', record.new_location)
        _replace(library, record.name, 'description', record.description)

    def libraries(self) -> List[Library]:
        """Return all libraries sorted by name."""
        return [self._libraries[name] for name in sorted(self._libraries)]


class VersionTable:
    """Release dates keyed by (name, version)."""

    def __init__(self, versions: Iterable[VersionRecord] = ()):
        self._versions: Dict[DependencyKey, VersionRecord] = {}
        for version in versions:
            self._versions[version.key] = replace(version)

    def __len__(self) -> int:
        return len(self._versions)

    def __contains__(self, key: DependencyKey) -> bool:
        return key in self._versions

    def __eq__(self, other) -> bool:
        if not isinstance(other, VersionTable):
            return NotImplemented
        return self._versions == other._versions

    def get(self, name: str, version: str) -> VersionRecord:
        record = self._versions.get(DependencyKey(name, version))
        if record is None:
            return VersionRecord(name=name, version=version)
        return replace(record)

    def date(self, name: str, version: str) -> str:
        """Return the release date of name at version, or ''."""
        return self.get(name, version).date

    def merge_one(self, name: str, version: str, date: str) -> None:
        """
        Record that version of name was released on date.

        Raises:
            ConflictingMetadata: If a different date is already stored
        """
        if not name or not version:
            return
        key = DependencyKey(name, version)
        record = self._versions.get(key)
        if record is None:
            record = VersionRecord(name=name, version=version)
            self._versions[key] = record
        _replace(record, str(key), 'date', date)

    def merge(self, record: Union[VersionRecord, Dependency]) -> None:
        """
        Fold the version facts of a record into the table.

        A Dependency row carries two facts: the date of its own version and
        the date of its library's latest version.
        """
        if isinstance(record, VersionRecord):
            self.merge_one(record.name, record.version, record.date)
            return
        self.merge_one(record.name, record.version, record.date)
        self.merge_one(record.name, record.latest, record.latest_date)

    def versions(self) -> List[VersionRecord]:
        """Return all versions sorted by name, then version."""
        return [self._versions[key] for key in sorted(self._versions)]


def merge_all(records: Iterable, table: Union[LibraryTable, VersionTable], source: Optional[str] = None) -> int:
    """
    Merge records into a table in order, stopping at the first conflict.

    Args:
        records: Rows to merge
        table: LibraryTable or VersionTable
        source: File the rows were read from, attached to any conflict

    Returns:
        Number of rows merged

    Raises:
        ConflictingMetadata: On the first conflicting row, with source set
    """
    count = 0
    for record in records:
        try:
            table.merge(record)
        except ConflictingMetadata as e:
            if source and not e.source:
                e.source = source
            raise
        count += 1
    logger.info(f"Merged {count} rows from {source or 'input'} into {type(table).__name__}")
    return count


def build_dependency_rows(
    coordinates: Iterable[Coordinate],
    libraries: Optional[LibraryTable] = None,
    versions: Optional[VersionTable] = None,
) -> List[Dependency]:
    """
    Join direct dependency coordinates against the reference tables.

    Consecutive coordinates that reduce to the same name and version
    (differing only in packaging or scope) yield a single row.

    Args:
        coordinates: Direct dependencies in output order
        libraries: Library table, or None to leave library columns empty
        versions: Version table, or None to leave date columns empty

    Returns:
        One Dependency row per distinct consecutive (name, version)
    """
    rows = []
    last_key = None
    for coordinate in coordinates:
        key = coordinate.key
        if key == last_key:
            continue
        last_key = key
        row = Dependency(name=key.name, version=key.version)
        if libraries is not None:
            library = libraries.get(row.name)
            row.latest = library.latest
            row.new_location = library.new_location
            row.description = library.description
        if versions is not None:
            row.date = versions.date(row.name, row.version)
            row.latest_date = versions.date(row.name, row.latest)
        rows.append(row)
    return rows
