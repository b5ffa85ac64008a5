"""Unit tests for the CLI interface.

Tests cover:
- extract with valid/invalid paths and zoomed coordinates
- patterns capture/add-regex/list/delete/export/import/suggest/test
- rename with dry runs, real renames and bad input
- --help output
- Missing dependency error messages
"""

from __future__ import annotations

import json
import shutil
from unittest.mock import patch

import pytest
from click.testing import CliRunner

from pdf_pattern_renamer.cli import _check_dependencies, cli

INVOICE_BOX = ["--left", "60", "--top", "80", "--right", "360", "--bottom", "110"]
CLIENT_REGEX = r"client:\s*(.+)"


@pytest.fixture
def store_path(tmp_path):
    return tmp_path / "store" / "patterns.json"


@pytest.fixture
def run(store_path):
    runner = CliRunner()

    def _run(*args):
        return runner.invoke(cli, ["--store", str(store_path), *map(str, args)])

    return _run


# ---------------------------------------------------------------------------
# extract command tests
# ---------------------------------------------------------------------------


class TestExtractCommand:
    def test_extract_prints_text_under_rectangle(self, run, invoice_pdf):
        result = run("extract", invoice_pdf, *INVOICE_BOX)
        assert result.exit_code == 0, result.output
        assert result.output.strip() == "INVOICE 2024-001"

    def test_extract_at_zoom(self, run, invoice_pdf):
        result = run(
            "extract", invoice_pdf, "--zoom", "2",
            "--left", "120", "--top", "160", "--right", "720", "--bottom", "220",
        )
        assert result.exit_code == 0, result.output
        assert result.output.strip() == "INVOICE 2024-001"

    def test_extract_second_page(self, run, invoice_pdf):
        result = run("extract", invoice_pdf, "--page", "2", *INVOICE_BOX)
        assert result.output.strip() == "Page two"

    def test_extract_page_out_of_range(self, run, invoice_pdf):
        result = run("extract", invoice_pdf, "--page", "7", *INVOICE_BOX)
        assert result.exit_code != 0
        assert "Page 7" in result.output

    def test_extract_small_selection_rejected(self, run, invoice_pdf):
        result = run(
            "extract", invoice_pdf,
            "--left", "60", "--top", "80", "--right", "65", "--bottom", "110",
        )
        assert result.exit_code != 0
        assert "at least 10" in result.output

    def test_extract_empty_region(self, run, invoice_pdf):
        result = run(
            "extract", invoice_pdf,
            "--left", "300", "--top", "500", "--right", "400", "--bottom", "600",
        )
        assert result.exit_code != 0
        assert "No text found" in result.output

    @patch("pdf_pattern_renamer.cli._check_dependencies", return_value=[])
    def test_extract_nonexistent_file(self, mock_deps, run):
        result = run("extract", "/tmp/does_not_exist_abc123.pdf", *INVOICE_BOX)
        assert result.exit_code != 0
        assert "File not found" in result.output


# ---------------------------------------------------------------------------
# patterns group tests
# ---------------------------------------------------------------------------


class TestPatternsCommands:
    def test_capture_then_list(self, run, invoice_pdf, store_path):
        result = run("patterns", "capture", invoice_pdf, "--name", "Invoice", *INVOICE_BOX)
        assert result.exit_code == 0, result.output
        assert "INVOICE 2024-001" in result.output
        assert store_path.exists()

        listing = run("patterns", "list")
        assert "[0] Invoice: VISUAL page 1" in listing.output

    @patch("pdf_pattern_renamer.selection_tracker.SelectionTracker.mark_saved", autospec=True)
    def test_capture_marks_selection_saved(self, mark_saved, run, invoice_pdf):
        result = run("patterns", "capture", invoice_pdf, "--name", "Invoice", *INVOICE_BOX)
        assert result.exit_code == 0, result.output
        mark_saved.assert_called_once()

    @patch("pdf_pattern_renamer.selection_tracker.SelectionTracker.mark_saved", autospec=True)
    def test_refused_capture_not_marked_saved(self, mark_saved, run, invoice_pdf):
        run("patterns", "capture", invoice_pdf, "--name", "  ", *INVOICE_BOX)
        mark_saved.assert_not_called()

    def test_capture_requires_name(self, run, invoice_pdf):
        result = run("patterns", "capture", invoice_pdf, "--name", "  ", *INVOICE_BOX)
        assert result.exit_code != 0
        assert "pattern name" in result.output

    def test_capture_empty_region_refused(self, run, invoice_pdf):
        result = run(
            "patterns", "capture", invoice_pdf, "--name", "Nothing",
            "--left", "300", "--top", "500", "--right", "400", "--bottom", "600",
        )
        assert result.exit_code != 0
        assert "No text could be extracted" in result.output

    def test_list_empty(self, run):
        assert "No patterns saved yet" in run("patterns", "list").output

    def test_add_regex_and_test(self, run, invoice_pdf):
        assert run("patterns", "add-regex", "Client", CLIENT_REGEX).exit_code == 0
        result = run("patterns", "test", "Client", invoice_pdf)
        assert result.exit_code == 0, result.output
        assert 'Match 1: "Client: ACME Corp" (Groups: ACME Corp)' in result.output

    def test_add_invalid_regex(self, run):
        result = run("patterns", "add-regex", "Broken", "(oops")
        assert result.exit_code != 0
        assert "Invalid regular expression" in result.output

    def test_test_visual_pattern(self, run, invoice_pdf):
        run("patterns", "capture", invoice_pdf, "--name", "Invoice", *INVOICE_BOX)
        result = run("patterns", "test", "Invoice", invoice_pdf)
        assert result.output.strip() == "INVOICE 2024-001"

    def test_test_unknown_pattern(self, run, invoice_pdf):
        result = run("patterns", "test", "Nope", invoice_pdf)
        assert result.exit_code != 0
        assert "No pattern named" in result.output

    def test_delete_by_name_and_index(self, run):
        run("patterns", "add-regex", "A", r"(a)")
        run("patterns", "add-regex", "B", r"(b)")
        assert run("patterns", "delete", "A").exit_code == 0
        assert run("patterns", "delete", "--index", "0").exit_code == 0
        assert "No patterns saved yet" in run("patterns", "list").output

    def test_delete_missing(self, run):
        assert run("patterns", "delete", "ghost").exit_code != 0
        assert run("patterns", "delete", "--index", "3").exit_code != 0
        assert run("patterns", "delete").exit_code != 0

    def test_export_import_round_trip(self, run, tmp_path, store_path):
        run("patterns", "add-regex", "Client", CLIENT_REGEX)
        exported = tmp_path / "export.json"
        result = run("patterns", "export", exported)
        assert "Exported 1 pattern(s)" in result.output
        assert json.loads(exported.read_text())[0]["name"] == "Client"

        store_path.unlink()
        result = run("patterns", "import", exported, "--replace")
        assert result.exit_code == 0, result.output
        assert "Client" in run("patterns", "list").output

    def test_import_invalid_file(self, run, tmp_path):
        bad = tmp_path / "bad.json"
        bad.write_text('{"not": "a list"}')
        result = run("patterns", "import", bad)
        assert result.exit_code != 0
        assert "Error importing patterns" in result.output

    def test_suggest_and_add(self, run, invoice_pdf):
        result = run("patterns", "suggest", invoice_pdf, "--add")
        assert result.exit_code == 0, result.output
        assert "Invoice Number" in result.output
        assert "Currency Amount" in result.output
        assert "Added" in result.output
        assert "Invoice Number" in run("patterns", "list").output


# ---------------------------------------------------------------------------
# rename command tests
# ---------------------------------------------------------------------------


class TestRenameCommand:
    @pytest.fixture
    def batch(self, tmp_path, invoice_pdf):
        folder = tmp_path / "batch"
        folder.mkdir()
        paths = [folder / "scan-a.pdf", folder / "scan-b.pdf"]
        for path in paths:
            shutil.copy(invoice_pdf, path)
        return paths

    def test_dry_run_leaves_files(self, run, batch, invoice_pdf):
        run("patterns", "capture", invoice_pdf, "--name", "Invoice", *INVOICE_BOX)
        result = run("rename", *batch, "-p", "Invoice", "--dry-run")
        assert result.exit_code == 0, result.output
        assert "scan-a.pdf -> INVOICE 2024-001.pdf" in result.output
        assert "scan-b.pdf -> INVOICE 2024-001_2.pdf" in result.output
        assert all(p.exists() for p in batch)

    def test_rename_combines_patterns(self, run, batch, invoice_pdf):
        run("patterns", "capture", invoice_pdf, "--name", "Invoice", *INVOICE_BOX)
        run("patterns", "add-regex", "Client", CLIENT_REGEX)
        result = run(
            "rename", *batch, "-p", "Invoice", "-p", "Client",
            "--separator", "-", "--suffix", "paid",
        )
        assert result.exit_code == 0, result.output
        assert "Succeeded:       2" in result.output
        folder = batch[0].parent
        assert sorted(p.name for p in folder.iterdir()) == [
            "INVOICE 2024-001-ACME Corp-paid.pdf",
            "INVOICE 2024-001-ACME Corp-paid-2.pdf",
        ]

    def test_file_with_no_match_is_skipped(self, run, batch):
        run("patterns", "add-regex", "Order", r"order\s+(\d+)")
        result = run("rename", *batch, "-p", "Order")
        assert result.exit_code == 0
        assert "skipped: no text extracted" in result.output
        assert all(p.exists() for p in batch)

    def test_unreadable_file_reported(self, run, batch, tmp_path):
        run("patterns", "add-regex", "Client", CLIENT_REGEX)
        broken = tmp_path / "broken.pdf"
        broken.write_bytes(b"garbage")
        result = run("rename", broken, *batch, "-p", "Client")
        assert result.exit_code != 0
        assert "could not open" in result.output
        assert "Failed:          1" in result.output

    def test_unknown_pattern(self, run, batch):
        result = run("rename", *batch, "-p", "Missing")
        assert result.exit_code != 0
        assert "No pattern named 'Missing'" in result.output

    def test_too_many_patterns(self, run, batch):
        result = run("rename", *batch, "-p", "a", "-p", "b", "-p", "c", "-p", "d")
        assert result.exit_code != 0
        assert "At most 3 patterns" in result.output


# ---------------------------------------------------------------------------
# --help output
# ---------------------------------------------------------------------------


class TestHelpOutput:
    def test_main_help(self):
        result = CliRunner().invoke(cli, ["--help"])
        assert result.exit_code == 0
        for command in ("extract", "patterns", "rename"):
            assert command in result.output

    def test_rename_help_describes_options(self):
        result = CliRunner().invoke(cli, ["rename", "--help"])
        assert result.exit_code == 0
        assert "PDF_PATHS" in result.output
        assert "--pattern" in result.output
        assert "--separator" in result.output
        assert "--dry-run" in result.output

    def test_extract_help_shows_defaults(self):
        result = CliRunner().invoke(cli, ["extract", "--help"])
        assert result.exit_code == 0
        assert "--page" in result.output
        assert "--zoom" in result.output


# ---------------------------------------------------------------------------
# Missing dependency error messages
# ---------------------------------------------------------------------------


class TestMissingDependencies:
    @patch("builtins.__import__", side_effect=ImportError("no module"))
    def test_missing_python_package_reported(self, mock_import):
        issues = _check_dependencies()
        assert len(issues) == 3
        assert any("pip install PyMuPDF" in i for i in issues)

    @patch("pdf_pattern_renamer.cli._check_dependencies")
    def test_extract_exits_on_missing_deps(self, mock_deps):
        mock_deps.return_value = ["Python package 'PyMuPDF' is not installed."]
        result = CliRunner().invoke(cli, ["extract", "dummy.pdf", *INVOICE_BOX])
        assert result.exit_code != 0
        assert "PyMuPDF" in result.output

    @patch("pdf_pattern_renamer.cli._check_dependencies")
    def test_rename_exits_on_missing_deps(self, mock_deps):
        mock_deps.return_value = ["Python package 'numpy' is not installed."]
        result = CliRunner().invoke(cli, ["rename", "a.pdf", "-p", "x"])
        assert result.exit_code != 0
        assert "numpy" in result.output
