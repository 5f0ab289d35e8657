"""Tests for job request enumerators."""

import pytest

from sequence_batch_processor.core.models import SequenceKind
from sequence_batch_processor.enumerators import (
    CsvEnumerator,
    FileEnumerator,
    create_enumerator,
    describe_enumerators,
    parse_kind,
    register_enumerator,
)
from sequence_batch_processor.errors import ConfigurationError


@pytest.fixture
def sequence_dir(tmp_path):
    """Create a directory of sequence files named like an upstream split."""
    group_dir = tmp_path / "IGHV3-30"
    group_dir.mkdir()
    (group_dir / "allele1.fasta").write_text(">allele1\nEVQLVESGGG\n")
    (group_dir / "allele2.fasta").write_text(">allele2\nQVQLVESGGG\n")
    (group_dir / "notes.txt").write_text("not a sequence")
    (group_dir / ".hidden.fasta").write_text(">hidden\nAAA\n")
    (group_dir / "empty.fasta").write_text("  \n")
    return group_dir


class TestRegistry:
    """Tests for the enumerator registry."""

    def test_builtin_types_registered(self):
        """Both built-in sources are listed with their descriptions."""
        sources = describe_enumerators()

        assert sources["file"] == FileEnumerator.description
        assert sources["csv"] == CsvEnumerator.description

    def test_create_by_type(self, tmp_path):
        """create_enumerator returns the registered class."""
        assert isinstance(create_enumerator("file", {"base_directory": str(tmp_path)}), FileEnumerator)
        assert isinstance(create_enumerator("csv", {"file_path": str(tmp_path / "x.csv")}), CsvEnumerator)

    def test_unknown_type(self):
        """Unknown types are rejected with the available choices."""
        with pytest.raises(ConfigurationError, match="Unknown request source"):
            create_enumerator("nope", {})

    def test_type_name_required(self):
        """A source that keeps the base type name cannot register."""

        class Unnamed(FileEnumerator):
            enumerator_type = "base"

        with pytest.raises(ValueError, match="enumerator_type"):
            register_enumerator(Unnamed)

    def test_duplicate_type_rejected(self):
        """A second class cannot take over a registered type name."""

        class OtherFile(FileEnumerator):
            pass

        with pytest.raises(ValueError, match="already provided by FileEnumerator"):
            register_enumerator(OtherFile)

        assert isinstance(create_enumerator("file", {}), FileEnumerator)


class TestParseKind:
    """Tests for parse_kind."""

    def test_case_insensitive(self):
        assert parse_kind(" DNA ") == SequenceKind.DNA
        assert parse_kind(SequenceKind.RNA) == SequenceKind.RNA

    def test_unknown_kind(self):
        with pytest.raises(ValueError, match="protein"):
            parse_kind("peptide")


class TestFileEnumerator:
    """Tests for FileEnumerator."""

    def test_one_request_per_file(self, sequence_dir):
        """Each matching non-empty visible file becomes a request."""
        result = FileEnumerator({"base_directory": str(sequence_dir), "pattern": "*.fasta"}).enumerate()

        assert result.success is True
        assert [r.output_target for r in result.requests] == ["allele1-alignment.txt", "allele2-alignment.txt"]
        assert result.requests[0].payload.sequence == ">allele1\nEVQLVESGGG\n"
        assert result.requests[0].payload.kind == SequenceKind.PROTEIN

    def test_group_defaults_to_directory_name(self, sequence_dir):
        """Without a group key the directory name is used."""
        result = FileEnumerator({"base_directory": str(sequence_dir), "pattern": "*.fasta"}).enumerate()

        assert {r.group_key for r in result.requests} == {"IGHV3-30"}
        assert result.metadata["group_key"] == "IGHV3-30"

    def test_explicit_group_kind_and_suffix(self, sequence_dir):
        """Group key, kind and output suffix come from configuration."""
        config = {
            "base_directory": str(sequence_dir),
            "pattern": "allele1.fasta",
            "group_key": "IGH",
            "kind": "dna",
            "output_suffix": ".aln",
        }

        result = FileEnumerator(config).enumerate()

        request = result.requests[0]
        assert (request.group_key, request.output_target) == ("IGH", "allele1.aln")
        assert request.payload.kind == SequenceKind.DNA

    def test_include_hidden(self, sequence_dir):
        """Hidden files are only picked up on request."""
        config = {"base_directory": str(sequence_dir), "pattern": "*.fasta", "include_hidden": True}

        result = FileEnumerator(config).enumerate()

        assert ".hidden-alignment.txt" in [r.output_target for r in result.requests]

    def test_skips_existing_outputs(self, sequence_dir, tmp_path):
        """Files whose output already exists are reported as skipped."""
        output_dir = tmp_path / "out"
        (output_dir / "IGHV3-30").mkdir(parents=True)
        (output_dir / "IGHV3-30" / "allele1-alignment.txt").write_text("done")
        config = {"base_directory": str(sequence_dir), "pattern": "*.fasta", "output_directory": str(output_dir)}

        result = FileEnumerator(config).enumerate()

        assert [r.output_target for r in result.requests] == ["allele2-alignment.txt"]
        assert result.skipped == ["allele1-alignment.txt"]

    def test_missing_directory(self, tmp_path):
        result = FileEnumerator({"base_directory": str(tmp_path / "missing")}).enumerate()

        assert result.success is False
        assert "does not exist" in result.error

    def test_invalid_kind(self, sequence_dir):
        result = FileEnumerator({"base_directory": str(sequence_dir), "kind": "peptide"}).enumerate()

        assert result.success is False
        assert "Unknown sequence kind" in result.error

    def test_output_target_with_comma_fails(self, tmp_path):
        """A file name that cannot be stored in the ledger fails enumeration."""
        group_dir = tmp_path / "G1"
        group_dir.mkdir()
        (group_dir / "a,b.fasta").write_text(">a\nMKV\n")

        result = FileEnumerator({"base_directory": str(group_dir)}).enumerate()

        assert result.success is False
        assert "output_target" in result.error


class TestCsvEnumerator:
    """Tests for CsvEnumerator."""

    def test_inline_sequences(self, tmp_path):
        """Rows with inline sequences become requests across groups."""
        manifest = tmp_path / "jobs.csv"
        manifest.write_text(
            "group_key,output_target,kind,sequence\n"
            "IGH,a.txt,protein,MKV\n"
            "IGK,b.txt,dna,ACGT\n"
        )

        result = CsvEnumerator({"file_path": str(manifest)}).enumerate()

        assert result.success is True
        assert [(r.group_key, r.output_target) for r in result.requests] == [("IGH", "a.txt"), ("IGK", "b.txt")]
        assert result.requests[1].payload.kind == SequenceKind.DNA
        assert result.metadata["groups"] == ["IGH", "IGK"]

    def test_sequence_file_relative_to_manifest(self, tmp_path):
        """sequence_file paths are resolved next to the manifest."""
        (tmp_path / "seqs").mkdir()
        (tmp_path / "seqs" / "a.fasta").write_text(">a\nMKV\n")
        manifest = tmp_path / "jobs.csv"
        manifest.write_text("group_key,output_target,kind,sequence_file\nIGH,a.txt,protein,seqs/a.fasta\n")

        result = CsvEnumerator({"file_path": str(manifest)}).enumerate()

        assert result.requests[0].payload.sequence == ">a\nMKV\n"

    def test_missing_columns(self, tmp_path):
        manifest = tmp_path / "jobs.csv"
        manifest.write_text("group_key,sequence\nIGH,MKV\n")

        result = CsvEnumerator({"file_path": str(manifest)}).enumerate()

        assert result.success is False
        assert "output_target" in result.error

    def test_missing_sequence_column(self, tmp_path):
        manifest = tmp_path / "jobs.csv"
        manifest.write_text("group_key,output_target,kind\nIGH,a.txt,protein\n")

        result = CsvEnumerator({"file_path": str(manifest)}).enumerate()

        assert result.success is False
        assert "sequence" in result.error

    def test_invalid_row_reports_line(self, tmp_path):
        """A bad row fails the whole manifest, naming its line."""
        manifest = tmp_path / "jobs.csv"
        manifest.write_text("group_key,output_target,kind,sequence\nIGH,a.txt,protein,MKV\nIGH,b.txt,peptide,MKV\n")

        result = CsvEnumerator({"file_path": str(manifest)}).enumerate()

        assert result.success is False
        assert "Invalid manifest row 3" in result.error

    def test_skips_existing_outputs(self, tmp_path):
        output_dir = tmp_path / "out"
        (output_dir / "IGH").mkdir(parents=True)
        (output_dir / "IGH" / "a.txt").write_text("done")
        manifest = tmp_path / "jobs.csv"
        manifest.write_text("group_key,output_target,kind,sequence\nIGH,a.txt,protein,MKV\nIGH,b.txt,protein,MKV\n")

        result = CsvEnumerator({"file_path": str(manifest), "output_directory": str(output_dir)}).enumerate()

        assert [r.output_target for r in result.requests] == ["b.txt"]
        assert result.skipped == ["a.txt"]

    @pytest.mark.parametrize("row", ["../outside,a.txt,protein,MKV", "IGH,../../outside/a.txt,protein,MKV"])
    def test_paths_outside_output_dir_rejected(self, tmp_path, row):
        """Existing files outside the output directory are never looked at or reported as skipped."""
        (tmp_path / "outside").mkdir()
        (tmp_path / "outside" / "a.txt").write_text("someone else's file")
        output_dir = tmp_path / "out"
        output_dir.mkdir()
        manifest = tmp_path / "jobs.csv"
        manifest.write_text(f"group_key,output_target,kind,sequence\n{row}\n")

        result = CsvEnumerator({"file_path": str(manifest), "output_directory": str(output_dir)}).enumerate()

        assert result.success is False
        assert "Invalid manifest row 2" in result.error
        assert result.skipped == []

    def test_missing_file(self, tmp_path):
        result = CsvEnumerator({"file_path": str(tmp_path / "missing.csv")}).enumerate()

        assert result.success is False
        assert "not found" in result.error
