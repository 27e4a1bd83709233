"""Tests for the restricted arithmetic evaluator."""

import pytest

from commands import calc


@pytest.mark.parametrize(
    "expression, expected",
    [
        ("2+2*3", 8),
        ("(2+2)*3", 12),
        ("10/4", 2.5),
        ("10/2", 5),
        ("-3 + 5", 2),
        ("1.5 * 2", 3),
    ],
)
def test_evaluate(expression, expected):
    assert calc.evaluate(expression) == expected


@pytest.mark.parametrize("expression", ["__import__('os')", "abc", "2 % 3", "1e5"])
def test_character_gate(expression):
    with pytest.raises(calc.InvalidCharacters):
        calc.evaluate(expression)


@pytest.mark.parametrize("expression", ["2+", "1/0", "()", "2 3"])
def test_invalid_expression(expression):
    with pytest.raises(calc.InvalidExpression):
        calc.evaluate(expression)


def test_power_operator_rejected():
    # "**" 字符都在白名单内，但乘方不是允许的运算
    with pytest.raises(calc.InvalidExpression):
        calc.evaluate("2**3")


def test_long_expression_is_invalid_not_crash():
    expression = "+".join(["1"] * 1500)
    with pytest.raises(calc.InvalidExpression):
        calc.evaluate(expression)


@pytest.mark.parametrize("expression", ["9" * 400 + ".0", "9" * 400 + ".0 - " + "9" * 400 + ".0"])
def test_non_finite_result_rejected(expression):
    with pytest.raises(calc.InvalidExpression):
        calc.evaluate(expression)


def test_oversized_integer_rejected():
    big = "9" * 2000
    with pytest.raises(calc.InvalidExpression):
        calc.evaluate(f"{big} * {big}")
