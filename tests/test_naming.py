"""
Tests for core/naming.py
"""

import pytest

from dessist.core.naming import NameScope, sanitize_identifier, variable_identifier


class TestSanitizeIdentifier:
    @pytest.mark.parametrize(
        "text, expected",
        [
            ("Load Data", "load_data"),
            ("SQL - Truncate staging", "sql_truncate_staging"),
            ("ExecuteSQL Task", "execute_sql_task"),
            ("RowCount", "row_count"),
            ("  padded  ", "padded"),
        ],
    )
    def test_display_names(self, text, expected):
        assert sanitize_identifier(text) == expected

    def test_leading_digit_is_prefixed(self):
        assert sanitize_identifier("123 go") == "_123_go"

    def test_keywords_are_suffixed(self):
        assert sanitize_identifier("class") == "class_"
        assert sanitize_identifier("Match") == "match_"

    def test_fallback_for_symbols_only(self):
        assert sanitize_identifier("!!!") == "unnamed"
        assert sanitize_identifier("", fallback="task") == "task"

    def test_result_is_identifier(self):
        assert sanitize_identifier("Für die Übersicht (v2)").isidentifier()


class TestVariableIdentifier:
    def test_namespace_is_dropped(self):
        assert variable_identifier("User::RowCount") == "row_count"

    def test_bare_name(self):
        assert variable_identifier("FileName") == "file_name"


class TestNameScope:
    def test_collisions_are_numbered_in_order(self):
        scope = NameScope()
        assert [scope.claim("load_data") for _ in range(3)] == ["load_data", "load_data2", "load_data3"]

    def test_reserved_names_are_never_returned(self):
        scope = NameScope(reserved={"sql"})
        assert scope.claim("sql") == "sql2"
        assert "sql" in scope

    def test_existing_suffix_is_skipped(self):
        scope = NameScope()
        scope.claim("x2")
        assert scope.claim("x") == "x"
        assert scope.claim("x") == "x3"
