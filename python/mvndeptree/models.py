"""Core data models for mvndeptree."""

from dataclasses import dataclass
from typing import List, Optional, Tuple

from packageurl import PackageURL


class MalformedCoordinate(ValueError):
    """Raised when a dependency coordinate lacks one of its 5 fields."""

    def __init__(self, coordinate: str):
        self.coordinate = coordinate
        super().__init__(f"'{coordinate}' lacks all 5 dependency fields")


class ConflictingMetadata(ValueError):
    """
    Raised when two sources disagree on a fact that must not change.

    Attributes:
        key: Table key the conflict was found on (name, or name+version)
        field: Column name of the conflicting value
        existing: Value already stored in the table
        incoming: Value that was being merged
        source: File the incoming value came from, when known
    """

    def __init__(self, key: str, field: str, existing: str, incoming: str, source: Optional[str] = None):
        self.key = key
        self.field = field
        self.existing = existing
        self.incoming = incoming
        self.source = source
        super().__init__(str(self))

    def __str__(self) -> str:
        message = f"On '{self.key}', had '{self.existing}' saw '{self.incoming}' for '{self.field}'"
        if self.source:
            return f"{self.source}: {message}"
        return message


class CsvFormatError(ValueError):
    """Raised when a CSV file does not have the shape of its schema."""

    def __init__(self, message: str, path: Optional[str] = None, line: Optional[int] = None):
        self.path = path
        self.line = line
        location = path or '<stream>'
        if line is not None:
            location = f"{location}:{line}"
        super().__init__(f"{location}: {message}")


@dataclass(frozen=True)
class Coordinate:
    """A Maven coordinate as printed by dependency:tree."""

    group: str
    artifact: str
    packaging: str
    version: str
    scope: str

    @property
    def name(self) -> str:
        """Return the library name in group:artifact format."""
        return f"{self.group}:{self.artifact}"

    @property
    def key(self) -> 'DependencyKey':
        return DependencyKey(name=self.name, version=self.version)

    @property
    def purl(self) -> str:
        """Return the Package URL for this coordinate."""
        qualifiers = {}
        if self.packaging and self.packaging != 'jar':
            qualifiers['type'] = self.packaging
        return PackageURL(
            type='maven',
            namespace=self.group or None,
            name=self.artifact,
            version=self.version or None,
            qualifiers=qualifiers or None,
        ).to_string()

    def __str__(self) -> str:
        return ':'.join((self.group, self.artifact, self.packaging, self.version, self.scope))


@dataclass(frozen=True, order=True)
class DependencyKey:
    """Join key identifying one resolved dependency: library name plus version."""

    name: str
    version: str

    def __str__(self) -> str:
        return f"{self.name}+{self.version}"


@dataclass
class Library:
    """What is known about an artifact independent of its version."""

    COLUMNS = ('name', 'new_location', 'latest', 'description')

    name: str = ""
    new_location: str = ""
    latest: str = ""
    description: str = ""

    @classmethod
    def from_row(cls, row: List[str]) -> 'Library':
        return cls(*row)

    def to_row(self) -> List[str]:
        return [self.name, self.new_location, self.latest, self.description]


@dataclass
class VersionRecord:
    """The release date of one version of a library."""

    COLUMNS = ('name', 'version', 'date')

    name: str = ""
    version: str = ""
    date: str = ""

    @property
    def key(self) -> DependencyKey:
        return DependencyKey(name=self.name, version=self.version)

    @classmethod
    def from_row(cls, row: List[str]) -> 'VersionRecord':
        return cls(*row)

    def to_row(self) -> List[str]:
        return [self.name, self.version, self.date]


@dataclass
class Dependency:
    """
    One row of a dependency report.

    Produced by joining a DependencyKey against the library and version
    tables; read back by the merge tool to grow those tables.
    """

    REPORT_COLUMNS = ('name', 'version', 'date', 'latest', 'latest_date')
    COLUMNS = REPORT_COLUMNS + ('new_location', 'description')

    name: str = ""
    version: str = ""
    date: str = ""
    latest: str = ""
    latest_date: str = ""
    new_location: str = ""
    description: str = ""

    @property
    def key(self) -> DependencyKey:
        return DependencyKey(name=self.name, version=self.version)

    @classmethod
    def from_row(cls, row: List[str]) -> 'Dependency':
        # Reports come in the 5 column merge layout or the 7 column enrichment layout
        return cls(*row)

    def to_row(self) -> List[str]:
        return [
            self.name,
            self.version,
            self.date,
            self.latest,
            self.latest_date,
            self.new_location,
            self.description,
        ]


def accepted_widths(record_type) -> Tuple[int, ...]:
    """Return the column counts a CSV of this record type may have."""
    if record_type is Dependency:
        return (len(Dependency.REPORT_COLUMNS), len(Dependency.COLUMNS))
    return (len(record_type.COLUMNS),)
