# commands/calc.py
"""四则运算求值

表达式必须先通过字符白名单 (ALLOWED_EXPRESSION)，然后只对 AST 中的
数字、正负号、+ - * / 和括号求值，其余节点一律拒绝。
"""

import ast
import math
import operator
import re
from typing import Union

ALLOWED_EXPRESSION = re.compile(r"^[0-9+\-*/().\s]+$")

_BINARY_OPS = {
    ast.Add: operator.add,
    ast.Sub: operator.sub,
    ast.Mult: operator.mul,
    ast.Div: operator.truediv,
}
_UNARY_OPS = {
    ast.UAdd: operator.pos,
    ast.USub: operator.neg,
}

Number = Union[int, float]
# 超过这个位数的整数结果无法转成字符串回复
_MAX_INT_BITS = 10000


class InvalidCharacters(ValueError):
    pass


class InvalidExpression(ValueError):
    pass


def is_allowed(expression: str) -> bool:
    return bool(ALLOWED_EXPRESSION.match(expression))


def _eval_node(node: ast.AST) -> Number:
    if isinstance(node, ast.Expression):
        return _eval_node(node.body)
    if isinstance(node, ast.Constant) and type(node.value) in (int, float):
        return node.value
    if isinstance(node, ast.BinOp) and type(node.op) in _BINARY_OPS:
        return _BINARY_OPS[type(node.op)](_eval_node(node.left), _eval_node(node.right))
    if isinstance(node, ast.UnaryOp) and type(node.op) in _UNARY_OPS:
        return _UNARY_OPS[type(node.op)](_eval_node(node.operand))
    raise InvalidExpression(f"不支持的表达式节点: {type(node).__name__}")


def evaluate(expression: str) -> Number:
    """对白名单内的算术表达式求值

    Raises:
        InvalidCharacters: 含白名单以外的字符，此时不会解析表达式
        InvalidExpression: 表达式格式错误或无法求值（如除零）
    """
    if not is_allowed(expression):
        raise InvalidCharacters(expression)

    try:
        tree = ast.parse(expression.strip(), mode="eval")
        result = _eval_node(tree)
    except InvalidExpression:
        raise
    except (SyntaxError, ZeroDivisionError, OverflowError, RecursionError, MemoryError, ValueError) as e:
        raise InvalidExpression(f"{type(e).__name__}: {e}") from e

    if isinstance(result, float) and not math.isfinite(result):
        raise InvalidExpression(f"结果不是有限数: {result}")
    if isinstance(result, int) and result.bit_length() > _MAX_INT_BITS:
        raise InvalidExpression("结果过大")

    if isinstance(result, float) and result.is_integer():
        return int(result)
    return result
