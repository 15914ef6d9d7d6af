"""
Calculator Tool
===============

Exact arithmetic for queries like "what is 12 * 7?" or "15% of 240".

Evaluation order:
    1. Compound expressions ("(12 + 3) * 2", "2 + 3 * 4") found in the
       query, through a restricted evaluator
    2. Common phrasings, matched against the query and computed directly:
       - binary arithmetic            "12 * 7", "3.5 - 1"
       - percentages                  "15 percent of 240", "15% of 240"
       - powers                       "2 to the power of 10", "2^10"
       - square roots                 "square root of 81", "√81"
    3. A hint describing the syntax the tool understands

Expressions are runs of digits, operators, parentheses and spaces. Words
end a run, so "5 + 3 for 2 people" holds the expression "5 + 3" and the
lone number "2", never "5+32".

The restricted evaluator parses with `ast` and walks a whitelist of nodes
(numbers, + - * /, unary signs). Anything else, including `**`, names and
calls, is rejected, as is any expression longer than MAX_EXPRESSION_LENGTH.
"""

import ast
import math
import operator
import re

from chatpilot.tools import Tool, ToolCapability
from chatpilot.utils.logger import Logger

logger = Logger("Calculator")

MATH_KEYWORDS = [
    "calculate", "compute", "solve", "math", "equation",
    "add", "subtract", "multiply", "divide", "percentage",
    "square root", "power", "factorial", "sum", "average",
]

MATH_SYMBOLS = ["+", "-", "*", "/", "=", "%", "^", "√"]

NUMBER_OPERATION = re.compile(r"\b\d+(\.\d+)?\s*[+\-*/^%]\s*\d+(\.\d+)?\b")

_NUMBER = r"(\d+(?:\.\d+)?)"
_SIGNED_NUMBER = r"(-?\d+(?:\.\d+)?)"
BINARY_PATTERN = re.compile(rf"(?<![\d.]){_SIGNED_NUMBER}\s*([+\-*/])\s*{_SIGNED_NUMBER}")
PERCENT_PATTERN = re.compile(rf"{_NUMBER}\s*(?:percent|%)\s*of\s*{_NUMBER}", re.IGNORECASE)
POWER_PATTERN = re.compile(rf"{_NUMBER}\s*(?:to\s+the\s+power\s+of|\^)\s*{_NUMBER}", re.IGNORECASE)
SQRT_PATTERN = re.compile(rf"(?:square\s+root\s+of|√)\s*{_NUMBER}", re.IGNORECASE)

# A run of arithmetic characters starting at a number or an opening bracket
EXPRESSION_RUN = re.compile(r"[(\-]*\d[\d+\-*/(). ]*")
# Binary operators only: an operator preceded by an operand, not a sign
BINARY_OPERATOR = re.compile(r"(?<=[\d)])\s*[+\-*/]")

ALLOWED_EXPRESSION = re.compile(r"^[\d+\-*/(). ]+$")
MAX_EXPRESSION_LENGTH = 200

_BINARY_OPERATORS = {
    ast.Add: operator.add,
    ast.Sub: operator.sub,
    ast.Mult: operator.mul,
    ast.Div: operator.truediv,
}

_UNARY_OPERATORS = {
    ast.UAdd: operator.pos,
    ast.USub: operator.neg,
}


def find_expressions(query: str) -> list[str]:
    """
    Arithmetic runs in a query, in order of appearance.

    "What's (12 + 3) * 2 for 4?" -> ["(12 + 3) * 2", "4"]
    """
    expressions = []
    for match in EXPRESSION_RUN.finditer(query):
        # Sentence punctuation leaves stray symbols at the end
        expression = match.group(0).strip().rstrip("+-*/.( ")
        if expression:
            expressions.append(expression)
    return expressions


def operator_count(expression: str) -> int:
    return len(BINARY_OPERATOR.findall(expression))


def safe_eval(expression: str) -> float | None:
    """
    Evaluate an arithmetic expression without eval().

    Returns None for anything outside digits, + - * / ( ) . and spaces, for
    expressions longer than MAX_EXPRESSION_LENGTH, or for arithmetic errors
    such as division by zero.
    """
    if len(expression) > MAX_EXPRESSION_LENGTH or not ALLOWED_EXPRESSION.match(expression):
        return None

    try:
        tree = ast.parse(expression, mode="eval")
        return _evaluate(tree)
    except (SyntaxError, ValueError, ZeroDivisionError, OverflowError, RecursionError, MemoryError):
        return None


def _evaluate(node: ast.AST) -> float:
    if isinstance(node, ast.Expression):
        return _evaluate(node.body)
    if isinstance(node, ast.Constant) and isinstance(node.value, (int, float)):
        return float(node.value)
    if isinstance(node, ast.UnaryOp) and type(node.op) in _UNARY_OPERATORS:
        return _UNARY_OPERATORS[type(node.op)](_evaluate(node.operand))
    if isinstance(node, ast.BinOp) and type(node.op) in _BINARY_OPERATORS:
        return _BINARY_OPERATORS[type(node.op)](_evaluate(node.left), _evaluate(node.right))
    raise ValueError(f"Unsupported expression element: {type(node).__name__}")


def format_number(value: float) -> str:
    """84.0 -> "84", 0.1 + 0.2 -> "0.3"."""
    if math.isfinite(value) and value == int(value):
        return str(int(value))
    return f"{round(value, 10):.10f}".rstrip("0").rstrip(".")


class CalculatorTool(Tool):
    """
    Evaluates arithmetic found in a query.

    Example:
        tool = CalculatorTool()
        await tool.execute("What is 12 * 7?")
        # 'Calculation Result: 84\\n\\nExpression evaluated from: "What is 12 * 7?"'
    """

    name = "Calculator"
    description = "Perform mathematical calculations and solve equations"
    capability = ToolCapability.CALCULATION

    def should_activate(self, query: str) -> bool:
        lower_query = query.lower()

        return (
            any(keyword in lower_query for keyword in MATH_KEYWORDS)
            or any(symbol in query for symbol in MATH_SYMBOLS)
            or NUMBER_OPERATION.search(query) is not None
        )

    async def execute(self, query: str) -> str:
        logger.debug(f"Executing calculation for: {query}")

        result = self.evaluate(query)
        if result is not None:
            return f'Calculation Result: {format_number(result)}\n\nExpression evaluated from: "{query}"'

        return self.math_hint(query)

    def evaluate(self, query: str) -> float | None:
        """Compute the query's value, or None if no arithmetic was found."""
        expressions = find_expressions(query)

        compound = [expression for expression in expressions if operator_count(expression) > 1]
        if compound:
            # Never fall back to part of a compound expression
            for expression in compound:
                result = safe_eval(expression)
                if result is not None:
                    return result
            return None

        match = BINARY_PATTERN.search(query)
        if match:
            return self._binary(float(match.group(1)), match.group(2), float(match.group(3)))

        match = PERCENT_PATTERN.search(query)
        if match:
            return float(match.group(1)) / 100 * float(match.group(2))

        match = POWER_PATTERN.search(query)
        if match:
            try:
                return math.pow(float(match.group(1)), float(match.group(2)))
            except OverflowError:
                return None

        match = SQRT_PATTERN.search(query)
        if match:
            return math.sqrt(float(match.group(1)))

        return None

    @staticmethod
    def _binary(left: float, op: str, right: float) -> float | None:
        if op == "+":
            return left + right
        if op == "-":
            return left - right
        if op == "*":
            return left * right
        if op == "/":
            return left / right if right != 0 else None
        return None

    @staticmethod
    def math_hint(query: str) -> str:
        """Explain the supported syntax for the topic the query mentions."""
        lower_query = query.lower()

        if "factorial" in lower_query:
            return 'For factorial calculations, use the format "factorial of n" or "n!" where n is a positive integer.'
        if "average" in lower_query or "mean" in lower_query:
            return 'To calculate an average, provide the numbers you want to average. Example: "average of 10, 20, 30"'
        if "percentage" in lower_query:
            return 'For percentage calculations, use formats like "20% of 100" or "what percentage is 25 of 100"'
        if "square root" in lower_query:
            return 'For square root calculations, use "square root of [number]" format.'
        return (
            "I can help with basic arithmetic (+, -, *, /), percentages, square roots, and powers. "
            "Please provide a clear mathematical expression."
        )
