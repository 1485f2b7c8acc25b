"""
Evaluation of ontology formulas (title, subtitle, time, display and
validation formulas).

Formulas are written in a small, side-effect free subset of Python expression
syntax, e.g.::

    prop('firstName') + ' ' + prop('lastName')
    dependentPropRaw('age') >= 0 if dependentPropRaw('age') is not None else True
    f"{label}: {prop('title')}"

The names available to a formula are the capability functions (`prop`,
`propRaw`, `dependentProp`, `dependentPropRaw`, `longestProp`, `isEdge`), the
formula `key`, a handful of safe builtins and any additional scope the caller
supplies.
"""

import ast
import logging
import operator
from dataclasses import dataclass
from typing import Any, Callable, Protocol

from .data_model import Entity
from .errors import CompoundNestingError, FormulaError, InvalidArgumentError

logger = logging.getLogger(__name__)

SAFE_FUNCTIONS: dict[str, Callable[..., Any]] = {
    "len": len,
    "str": str,
    "int": int,
    "float": float,
    "bool": bool,
    "abs": abs,
    "min": min,
    "max": max,
    "round": round,
    "any": any,
    "all": all,
    "sorted": sorted,
}

STRING_METHODS = frozenset(
    {
        "lower",
        "upper",
        "strip",
        "lstrip",
        "rstrip",
        "title",
        "capitalize",
        "startswith",
        "endswith",
        "replace",
        "split",
        "join",
        "isdigit",
    }
)

_BINARY_OPERATORS = {
    ast.Add: operator.add,
    ast.Sub: operator.sub,
    ast.Mult: operator.mul,
    ast.Div: operator.truediv,
    ast.FloorDiv: operator.floordiv,
    ast.Mod: operator.mod,
}

_UNARY_OPERATORS = {
    ast.Not: operator.not_,
    ast.USub: operator.neg,
    ast.UAdd: operator.pos,
}

_COMPARE_OPERATORS = {
    ast.Eq: operator.eq,
    ast.NotEq: operator.ne,
    ast.Lt: operator.lt,
    ast.LtE: operator.le,
    ast.Gt: operator.gt,
    ast.GtE: operator.ge,
    ast.Is: operator.is_,
    ast.IsNot: operator.is_not,
    ast.In: lambda a, b: a in b,
    ast.NotIn: lambda a, b: a not in b,
}


# f-string conversions: !s, !r, !a
_CONVERSIONS = {ord("s"): str, ord("r"): repr, ord("a"): ascii}


@dataclass(frozen=True)
class Capabilities:
    """
    The resolver functions a formula may call.

    Every function takes the entity as its first argument; the evaluator binds
    it before exposing the functions to the formula.
    """

    prop: Callable[..., Any]
    prop_raw: Callable[..., Any]
    longest_prop: Callable[..., Any]
    is_edge: Callable[[Entity], bool]

    def recording(
        self, accessed: list[str], canonicalize: Callable[[str], str]
    ) -> "Capabilities":
        """
        Wrap `prop`, `prop_raw` and `longest_prop` so that every call returning
        a value (not `None` and not an empty string) appends the canonical
        name of the accessed property to `accessed`.
        """

        def capture(fn: Callable[..., Any]) -> Callable[..., Any]:
            def wrapper(entity: Entity, name: str | None = None, *args, **kwargs):
                result = fn(entity, name, *args, **kwargs)
                if name is not None and result is not None and result != "":
                    accessed.append(canonicalize(name))
                return result

            return wrapper

        return Capabilities(
            prop=capture(self.prop),
            prop_raw=capture(self.prop_raw),
            longest_prop=capture(self.longest_prop),
            is_edge=self.is_edge,
        )


class FormulaEvaluator(Protocol):
    def evaluate(
        self,
        formula: str,
        entity: Entity,
        capabilities: Capabilities,
        key: str | None = None,
        additional_scope: dict[str, Any] | None = None,
    ) -> Any: ...


class ExpressionEvaluator:
    "Evaluates formulas written as restricted Python expressions."

    def evaluate(
        self,
        formula: str,
        entity: Entity,
        capabilities: Capabilities,
        key: str | None = None,
        additional_scope: dict[str, Any] | None = None,
    ) -> Any:
        """
        Evaluate `formula` against `entity`.

        Parameters
        ----------
        formula : str
            The formula source.
        entity : Entity
            The element the formula is evaluated for.
        capabilities : Capabilities
            The resolver functions exposed to the formula.
        key : str | None
            The property key used by `dependentProp`/`dependentPropRaw`.
        additional_scope : dict[str, Any] | None
            Extra names visible to the formula, e.g. an edge `label`.

        Returns
        -------
        result : Any
            The formula result, or None when the formula is invalid or fails.
        """
        scope = self._build_scope(entity, capabilities, key, additional_scope)
        try:
            tree = ast.parse(formula.strip(), mode="eval")
        except SyntaxError as e:
            logger.warning(f"Unable to parse formula {formula!r}: {e}")
            return None

        try:
            return _evaluate_node(tree.body, scope)
        except (InvalidArgumentError, CompoundNestingError):
            raise
        except (FormulaError, ArithmeticError, LookupError, TypeError, ValueError) as e:
            logger.warning(f"Unable to evaluate formula {formula!r}: {e}")
            return None

    @staticmethod
    def _build_scope(
        entity: Entity,
        capabilities: Capabilities,
        key: str | None,
        additional_scope: dict[str, Any] | None,
    ) -> dict[str, Any]:
        scope: dict[str, Any] = dict(SAFE_FUNCTIONS)
        scope.update(
            {
                "prop": lambda name, prop_key=None: capabilities.prop(
                    entity, name, prop_key
                ),
                "propRaw": lambda name, prop_key=None: capabilities.prop_raw(
                    entity, name, prop_key
                ),
                "dependentProp": lambda name: capabilities.prop(entity, name, key),
                "dependentPropRaw": lambda name: capabilities.prop_raw(
                    entity, name, key
                ),
                "longestProp": lambda name=None: capabilities.longest_prop(
                    entity, name
                ),
                "isEdge": lambda: capabilities.is_edge(entity),
                "key": key,
            }
        )
        if additional_scope:
            scope.update(additional_scope)
        return scope


def _evaluate_node(node: ast.AST, scope: dict[str, Any]) -> Any:
    if isinstance(node, ast.Constant):
        return node.value

    if isinstance(node, ast.Name):
        if node.id not in scope:
            raise FormulaError(f"Unknown name: {node.id}")
        return scope[node.id]

    if isinstance(node, ast.BoolOp):
        result = None
        for value_node in node.values:
            result = _evaluate_node(value_node, scope)
            if isinstance(node.op, ast.And) and not result:
                return result
            if isinstance(node.op, ast.Or) and result:
                return result
        return result

    if isinstance(node, ast.UnaryOp):
        op = _UNARY_OPERATORS.get(type(node.op))
        if op is None:
            raise FormulaError(f"Unsupported operator: {type(node.op).__name__}")
        return op(_evaluate_node(node.operand, scope))

    if isinstance(node, ast.BinOp):
        op = _BINARY_OPERATORS.get(type(node.op))
        if op is None:
            raise FormulaError(f"Unsupported operator: {type(node.op).__name__}")
        return op(_evaluate_node(node.left, scope), _evaluate_node(node.right, scope))

    if isinstance(node, ast.Compare):
        left = _evaluate_node(node.left, scope)
        for op_node, comparator in zip(node.ops, node.comparators):
            right = _evaluate_node(comparator, scope)
            if not _COMPARE_OPERATORS[type(op_node)](left, right):
                return False
            left = right
        return True

    if isinstance(node, ast.IfExp):
        if _evaluate_node(node.test, scope):
            return _evaluate_node(node.body, scope)
        return _evaluate_node(node.orelse, scope)

    if isinstance(node, (ast.List, ast.Tuple)):
        values = [_evaluate_node(element, scope) for element in node.elts]
        return values if isinstance(node, ast.List) else tuple(values)

    if isinstance(node, ast.Subscript):
        container = _evaluate_node(node.value, scope)
        if isinstance(node.slice, ast.Slice):
            raise FormulaError("Slices are not supported")
        return container[_evaluate_node(node.slice, scope)]

    if isinstance(node, ast.JoinedStr):
        return "".join(str(_evaluate_node(value, scope)) for value in node.values)

    if isinstance(node, ast.FormattedValue):
        value = _evaluate_node(node.value, scope)
        if value is None:
            return ""
        conversion = _CONVERSIONS.get(node.conversion)
        if conversion is not None:
            value = conversion(value)
        format_spec = _evaluate_node(node.format_spec, scope) if node.format_spec else ""
        return format(value, format_spec)

    if isinstance(node, ast.Attribute):
        target = _evaluate_node(node.value, scope)
        if not isinstance(target, str) or node.attr not in STRING_METHODS:
            raise FormulaError(f"Unsupported attribute: {node.attr}")
        return getattr(target, node.attr)

    if isinstance(node, ast.Call):
        function = _evaluate_node(node.func, scope)
        if not callable(function):
            raise FormulaError(f"{ast.unparse(node.func)} is not callable")
        args = [_evaluate_node(arg, scope) for arg in node.args]
        kwargs = {kw.arg: _evaluate_node(kw.value, scope) for kw in node.keywords}
        if None in kwargs:
            raise FormulaError("Keyword argument unpacking is not supported")
        return function(*args, **kwargs)

    raise FormulaError(f"Unsupported expression: {type(node).__name__}")
