"""
Tests for cli.py
"""

from click.testing import CliRunner

from dessist import __version__
from dessist.cli import main


def _invoke(*args):
    return CliRunner().invoke(main, [str(a) for a in args])


class TestCli:
    def test_converts_package(self, nightly_file, tmp_path):
        out = tmp_path / "out"
        result = _invoke(nightly_file, out)
        assert result.exit_code == 0, result.output
        assert "entry point truncate_staging()" in result.output
        assert "0 untranslated constructs" in result.output
        assert (out / "program.py").exists()

    def test_sql2005_without_smo(self, nightly_file, tmp_path):
        result = _invoke(nightly_file, tmp_path, "--sql-mode", "2005", "--no-smo")
        assert result.exit_code == 0, result.output
        program = (tmp_path / "program.py").read_text(encoding="utf-8")
        assert "def execute_sql(" in program
        assert "def table_parameter(" not in program

    def test_empty_package_fails(self, empty_file, tmp_path):
        out = tmp_path / "out"
        result = _invoke(empty_file, out)
        assert result.exit_code == 1
        assert "No executables" in result.output
        assert not out.exists()

    def test_missing_package_is_usage_error(self, tmp_path):
        result = _invoke(tmp_path / "missing.dtsx", tmp_path)
        assert result.exit_code == 2

    def test_invalid_sql_mode(self, nightly_file, tmp_path):
        result = _invoke(nightly_file, tmp_path, "--sql-mode", "2019")
        assert result.exit_code == 2

    def test_version(self):
        result = _invoke("--version")
        assert result.exit_code == 0
        assert __version__ in result.output
