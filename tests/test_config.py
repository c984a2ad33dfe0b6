"""
Tests for config.py
"""

import pytest
from pydantic import ValidationError

from dessist.config import ContentPrecedence, GeneratorOptions, SqlCompatibility


class TestGeneratorOptions:
    def test_defaults(self):
        options = GeneratorOptions()
        assert options.sql_mode is SqlCompatibility.SQL2008
        assert options.use_smo is True
        assert options.content_precedence is ContentPrecedence.LAST
        assert options.indent == "    "
        assert options.output_filename == "program.py"

    def test_string_values_are_coerced(self):
        options = GeneratorOptions(sql_mode="SQL2005", content_precedence="first")
        assert options.sql_mode is SqlCompatibility.SQL2005
        assert options.content_precedence is ContentPrecedence.FIRST

    @pytest.mark.parametrize("indent", ["", "x", " a "])
    def test_indent_must_be_whitespace(self, indent):
        with pytest.raises(ValidationError):
            GeneratorOptions(indent=indent)

    def test_tab_indent_allowed(self):
        assert GeneratorOptions(indent="\t").indent == "\t"

    def test_frozen(self):
        options = GeneratorOptions()
        with pytest.raises(ValidationError):
            options.use_smo = False

    def test_unknown_sql_mode_rejected(self):
        with pytest.raises(ValidationError):
            GeneratorOptions(sql_mode="SQL2019")
