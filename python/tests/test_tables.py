"""Tests for the library and version tables."""

import io

import pytest
from mvndeptree.formatters import OutputFormatter
from mvndeptree.models import ConflictingMetadata, Coordinate, Dependency, Library, VersionRecord
from mvndeptree.parsers import read_csv
from mvndeptree.tables import LibraryTable, VersionTable, build_dependency_rows, merge_all


class TestLibraryTable:
    """Tests for merging library facts."""

    def test_missing_name_returns_empty_record(self):
        table = LibraryTable()
        assert table.get("a:b") == Library(name="a:b")
        assert "a:b" not in table

    def test_merge_is_idempotent_then_conflicts(self):
        table = LibraryTable()
        table.merge(Library(name="a:b", latest="2.0"))
        table.merge(Library(name="a:b", latest="2.0"))
        assert table.libraries() == [Library(name="a:b", latest="2.0")]

        with pytest.raises(ConflictingMetadata) as excinfo:
            table.merge(Library(name="a:b", latest="3.0"))

        error = excinfo.value
        assert error.key == "a:b"
        assert error.field == "latest"
        assert error.existing == "2.0"
        assert error.incoming == "3.0"
        assert str(error) == "On 'a:b', had '2.0' saw '3.0' for 'latest'"
        assert table.get("a:b").latest == "2.0"

    def test_empty_values_never_overwrite(self):
        table = LibraryTable([Library(name="a:b", new_location="c:d", latest="2.0", description="Things")])
        table.merge(Library(name="a:b"))
        assert table.get("a:b") == Library(name="a:b", new_location="c:d", latest="2.0", description="Things")

    def test_empty_fields_are_filled_in(self):
        table = LibraryTable([Library(name="a:b", latest="2.0")])
        table.merge(Dependency(name="a:b", version="1.0", new_location="c:d", description="Things"))
        assert table.get("a:b") == Library(name="a:b", new_location="c:d", latest="2.0", description="Things")

    def test_conflict_keeps_fields_merged_before_it(self):
        table = LibraryTable([Library(name="a:b", description="Old")])
        with pytest.raises(ConflictingMetadata) as excinfo:
            table.merge(Library(name="a:b", latest="2.0", new_location="c:d", description="New"))
        assert excinfo.value.field == "description"
        assert table.get("a:b") == Library(name="a:b", new_location="c:d", latest="2.0", description="Old")

    def test_empty_name_is_ignored(self):
        table = LibraryTable()
        table.merge(Library(name="", latest="2.0"))
        assert len(table) == 0

    def test_merge_is_commutative_for_compatible_facts(self):
        facts = [Library(name="a:b", latest="2.0"), Library(name="a:b", description="Things")]
        forward = LibraryTable()
        backward = LibraryTable()
        merge_all(facts, forward)
        merge_all(reversed(facts), backward)
        assert forward == backward

    def test_seed_records_are_not_mutated(self):
        seed = Library(name="a:b")
        table = LibraryTable([seed])
        table.merge(Library(name="a:b", latest="2.0"))
        assert seed.latest == ""

    def test_get_returns_a_copy(self):
        table = LibraryTable([Library(name="a:b", latest="2.0")])
        table.get("a:b").latest = "3.0"
        assert table.get("a:b").latest == "2.0"

    def test_libraries_sorted_by_name(self):
        table = LibraryTable([Library(name="z:z"), Library(name="a:b"), Library(name="a-b:c")])
        assert [lib.name for lib in table.libraries()] == ["a-b:c", "a:b", "z:z"]


class TestVersionTable:
    """Tests for merging release dates."""

    def test_date_lookup(self):
        table = VersionTable([VersionRecord(name="a:b", version="1.0", date="2020-01-01")])
        assert table.date("a:b", "1.0") == "2020-01-01"
        assert table.date("a:b", "1.1") == ""

    def test_dependency_contributes_two_facts(self):
        table = VersionTable()
        table.merge(Dependency(name="a:b", version="1.0", date="2020-01-01", latest="2.0", latest_date="2021-06-01"))
        assert table.versions() == [
            VersionRecord(name="a:b", version="1.0", date="2020-01-01"),
            VersionRecord(name="a:b", version="2.0", date="2021-06-01"),
        ]

    def test_missing_version_or_latest_is_ignored(self):
        table = VersionTable()
        table.merge(Dependency(name="a:b", version="", date="2020-01-01", latest="", latest_date="2021-06-01"))
        table.merge(Dependency(name="", version="1.0", date="2020-01-01"))
        assert len(table) == 0

    def test_version_without_date_is_recorded(self):
        table = VersionTable()
        table.merge(Dependency(name="a:b", version="1.0"))
        assert table.versions() == [VersionRecord(name="a:b", version="1.0")]

    def test_conflicting_date(self):
        table = VersionTable([VersionRecord(name="a:b", version="2.0", date="2021-06-01")])
        with pytest.raises(ConflictingMetadata) as excinfo:
            table.merge(Dependency(name="a:b", version="1.0", date="2020-01-01", latest="2.0", latest_date="2021-07-01"))
        assert excinfo.value.key == "a:b+2.0"
        assert excinfo.value.field == "date"
        assert table.date("a:b", "1.0") == "2020-01-01"

    def test_idempotent(self):
        record = VersionRecord(name="a:b", version="1.0", date="2020-01-01")
        once = VersionTable()
        twice = VersionTable()
        once.merge(record)
        twice.merge(record)
        twice.merge(record)
        assert once == twice

    def test_get_returns_a_copy(self):
        table = VersionTable([VersionRecord(name="a:b", version="1.0", date="2020-01-01")])
        table.get("a:b", "1.0").date = "2021-01-01"
        assert table.date("a:b", "1.0") == "2020-01-01"

    def test_merge_is_commutative_for_compatible_facts(self):
        facts = [
            Dependency(name="a:b", version="1.0", date="2020-01-01", latest="2.0"),
            Dependency(name="a:b", version="1.1", latest="2.0", latest_date="2021-06-01"),
            VersionRecord(name="a:b", version="1.0"),
            VersionRecord(name="c:d", version="3.0", date="2022-03-01"),
        ]
        forward = VersionTable()
        backward = VersionTable()
        merge_all(facts, forward)
        merge_all(reversed(facts), backward)
        assert forward == backward
        assert len(forward) == 4

    def test_versions_sorted_by_name_then_version(self):
        table = VersionTable([
            VersionRecord(name="b:c", version="1.0"),
            VersionRecord(name="a:b", version="1.9"),
            VersionRecord(name="a:b", version="1.10"),
        ])
        assert [(v.name, v.version) for v in table.versions()] == [
            ("a:b", "1.10"),
            ("a:b", "1.9"),
            ("b:c", "1.0"),
        ]


class TestMergeAll:
    """Tests for folding many rows into a table."""

    def test_conflict_names_source(self):
        rows = [
            Dependency(name="a:b", version="1.0", latest="2.0"),
            Dependency(name="a:b", version="1.1", latest="3.0"),
            Dependency(name="c:d", version="1.0", latest="1.0"),
        ]
        table = LibraryTable()
        with pytest.raises(ConflictingMetadata) as excinfo:
            merge_all(rows, table, source="reports/app.csv")
        assert excinfo.value.source == "reports/app.csv"
        assert str(excinfo.value).startswith("reports/app.csv: On 'a:b'")
        assert "c:d" not in table

    def test_returns_row_count(self):
        rows = [Dependency(name="a:b", version="1.0"), Dependency(name="c:d", version="1.0")]
        assert merge_all(rows, VersionTable()) == 2


class TestRoundTrip:
    """Tables written as CSV read back to equal tables."""

    def test_library_table(self):
        table = LibraryTable([
            Library(name="a:b", new_location="c:d", latest="2.0", description='Says "hi", twice'),
            Library(name="e:f"),
        ])
        output = OutputFormatter.format_libraries(table.libraries())
        assert LibraryTable(read_csv(io.StringIO(output), Library)) == table

    def test_version_table(self):
        table = VersionTable([
            VersionRecord(name="a:b", version="1.0", date="2020-01-01"),
            VersionRecord(name="a:b", version="2.0"),
        ])
        output = OutputFormatter.format_versions(table.versions())
        assert VersionTable(read_csv(io.StringIO(output), VersionRecord)) == table


class TestBuildDependencyRows:
    """Tests for joining direct dependencies with the tables."""

    def test_rows_without_tables(self):
        rows = build_dependency_rows([Coordinate("a", "b", "jar", "1.0", "compile")])
        assert rows == [Dependency(name="a:b", version="1.0")]

    def test_rows_are_enriched(self):
        libraries = LibraryTable([Library(name="a:b", new_location="x:y", latest="2.0", description="Things")])
        versions = VersionTable([
            VersionRecord(name="a:b", version="1.0", date="2020-01-01"),
            VersionRecord(name="a:b", version="2.0", date="2021-06-01"),
        ])
        rows = build_dependency_rows(
            [Coordinate("a", "b", "jar", "1.0", "compile"), Coordinate("c", "d", "jar", "3.0", "test")],
            libraries,
            versions,
        )
        assert rows == [
            Dependency(
                name="a:b",
                version="1.0",
                date="2020-01-01",
                latest="2.0",
                latest_date="2021-06-01",
                new_location="x:y",
                description="Things",
            ),
            Dependency(name="c:d", version="3.0"),
        ]

    def test_consecutive_duplicates_collapse(self):
        rows = build_dependency_rows([
            Coordinate("a", "b", "jar", "1.0", "compile"),
            Coordinate("a", "b", "test-jar", "1.0", "test"),
            Coordinate("a", "b", "jar", "1.1", "compile"),
        ])
        assert [(r.name, r.version) for r in rows] == [("a:b", "1.0"), ("a:b", "1.1")]
