"""
Tests for core/expressions.py
"""

import pytest

from dessist.core.expressions import translate_expression


class TestTranslation:
    @pytest.mark.parametrize(
        "source, expected",
        [
            ("@[User::Count] + 1", "count + 1"),
            ('@[User::Name] == "abc"', "name == 'abc'"),
            ("@[User::a] > 1 && !@[User::b]", "a > 1 and not b"),
            ("!(@x == 1)", "not (x == 1)"),
            ("@a || @b && @c", "a or b and c"),
            ("(@a || @b) && @c", "(a or b) and c"),
            ("1 - (2 - 3)", "1 - (2 - 3)"),
            ("@a < @b == TRUE", "(a < b) == True"),
            ("@x == NULL", "x == None"),
            ("-@x * 2", "-x * 2"),
        ],
    )
    def test_expression(self, source, expected):
        result = translate_expression(source)
        assert result.ok, result.reason
        assert result.code == expected
        assert result.target is None

    def test_conditional_operator(self):
        result = translate_expression('@[User::n] > 0 ? "pos" : "neg"')
        assert result.code == "'pos' if n > 0 else 'neg'"

    def test_string_escapes(self):
        result = translate_expression(r'"say \"hi\"\n"')
        assert result.code == repr('say "hi"\n')

    def test_numeric_suffix_is_dropped(self):
        assert translate_expression("10L + 2.5").code == "10 + 2.5"

    def test_variables_are_recorded_in_order(self):
        result = translate_expression("@[User::a] + @[User::b]")
        assert result.variables == ("User::a", "User::b")

    def test_custom_resolver(self):
        result = translate_expression("@[System::StartTime]", lambda ref: f"resolve({ref!r})")
        assert result.code == "resolve('System::StartTime')"


class TestArithmetic:
    @pytest.mark.parametrize(
        "source, expected",
        [
            ("@[User::n] / 2", "ssis_divide(n, 2)"),
            ("@a % @b", "ssis_modulo(a, b)"),
            ("@a * @b / @c", "ssis_divide(a * b, c)"),
            ("@a / @b * 2", "ssis_divide(a, b) * 2"),
            ("1 + @a / 2", "1 + ssis_divide(a, 2)"),
            ("@a / 2 / 3", "ssis_divide(ssis_divide(a, 2), 3)"),
        ],
    )
    def test_division_and_modulo_use_helpers(self, source, expected):
        result = translate_expression(source)
        assert result.ok, result.reason
        assert result.code == expected

    def test_helper_call_in_assignment(self):
        result = translate_expression("@[User::n] = @[User::n] % 3")
        assert result.as_statement() == "n = ssis_modulo(n, 3)"


class TestAssignment:
    def test_assignment_statement(self):
        result = translate_expression("@[User::i] = @[User::i] + 1")
        assert result.ok
        assert result.target == "i"
        assert result.code == "i + 1"
        assert result.as_statement() == "i = i + 1"
        assert result.variables[0] == "User::i"

    def test_equality_is_not_assignment(self):
        result = translate_expression("@[User::i] == 1")
        assert result.target is None
        assert result.as_statement() == "i == 1"


class TestUntranslatable:
    @pytest.mark.parametrize(
        "source",
        [
            "(DT_WSTR, 10) @[User::Count]",
            "GETDATE()",
            'SUBSTRING(@[User::Name], 1, 3)',
            "@[User::a] +",
            "@[User::a] ) 1",
            "   ",
            "#",
        ],
    )
    def test_reported_without_raising(self, source):
        result = translate_expression(source)
        assert result.ok is False
        assert result.code == "None"
        assert result.reason

    def test_cast_reason_is_specific(self):
        result = translate_expression("(DT_I4) @x")
        assert "DT_I4" in result.reason
