"""
Restricted host for user-authored strategy scripts.

A script is Python source that defines

    def generate_signals(signal_prices, execution_prices, params, ta):
        ...
        return signals

Before execution the source is screened with `ast`: imports,
global/nonlocal statements, dunder names, underscore-prefixed attributes,
array methods that write files, `np.<name>` outside the numpy allow-list
and any name that is neither a whitelisted builtin nor defined by the
script itself are rejected. The script runs with a whitelisted
`__builtins__`, `math` and `np` (a namespace holding only the allowed
array-math functions, not the numpy module), and receives a namespace
holding only the indicator functions as `ta`.

This narrows what a script can reach; it is not an operating-system
sandbox.
"""
import ast
import builtins
import logging
import math
from pathlib import Path
from types import SimpleNamespace
from typing import Any, Dict, List, Set, Tuple, Union

import numpy as np

from ..indicators import technical
from ..indicators import __all__ as INDICATOR_EXPORTS
from ..shared.errors import ConfigError

logger = logging.getLogger(__name__)

ENTRY_POINT = "generate_signals"

SAFE_BUILTIN_NAMES = (
    "abs", "all", "any", "bool", "dict", "divmod", "enumerate", "filter",
    "float", "int", "isinstance", "len", "list", "map", "max", "min", "pow",
    "range", "reversed", "round", "set", "sorted", "str", "sum", "tuple",
    "zip", "ArithmeticError", "Exception", "IndexError", "KeyError",
    "TypeError", "ValueError", "ZeroDivisionError",
)
SAFE_BUILTINS = {name: getattr(builtins, name) for name in SAFE_BUILTIN_NAMES}

# numpy functions and constants scripts may use as `np.<name>`
NUMPY_NAMES = (
    # constants and dtypes
    "nan", "inf", "pi", "e", "newaxis",
    "bool_", "int8", "int16", "int32", "int64", "float32", "float64",
    # construction
    "array", "asarray", "zeros", "ones", "full", "arange", "linspace",
    "zeros_like", "ones_like", "full_like",
    "concatenate", "stack", "append", "roll", "repeat", "tile", "flip",
    # element-wise math
    "abs", "absolute", "sign", "sqrt", "square", "exp", "log", "log10", "log1p",
    "power", "sin", "cos", "tan", "arctan", "tanh",
    "floor", "ceil", "round", "rint", "trunc", "clip",
    "minimum", "maximum", "fmin", "fmax",
    # logic and masks
    "where", "select", "isnan", "isfinite", "isinf", "isclose", "nan_to_num",
    "logical_and", "logical_or", "logical_not", "logical_xor",
    "any", "all", "nonzero", "flatnonzero", "count_nonzero",
    # reductions and windows
    "sum", "nansum", "mean", "nanmean", "median", "nanmedian",
    "std", "nanstd", "var", "nanvar", "min", "max", "nanmin", "nanmax",
    "argmin", "argmax", "percentile", "nanpercentile", "quantile",
    "cumsum", "cumprod", "diff", "gradient", "convolve", "interp",
    "sort", "argsort", "unique", "searchsorted", "corrcoef", "polyfit",
)
NUMPY_NAMESPACE = SimpleNamespace(**{name: getattr(np, name) for name in NUMPY_NAMES})

MODULE_GLOBALS = {"np": NUMPY_NAMESPACE, "math": math}

# Methods on arrays and strings that write files, expose raw memory or
# render arbitrary attributes
BLOCKED_ATTRIBUTES = frozenset({
    "tofile", "dump", "ctypes", "format", "format_map",
})

# Indicator functions exposed to scripts as `ta`
INDICATOR_NAMESPACE = SimpleNamespace(**{
    name: getattr(technical, name) for name in INDICATOR_EXPORTS if name != "technical"
})


class _ScriptScreener(ast.NodeVisitor):
    """Collects violations of the script restrictions."""

    def __init__(self, allowed_names: Set[str]):
        self.allowed_names = allowed_names
        self.violations = []

    def _reject(self, node: ast.AST, message: str) -> None:
        self.violations.append(f"line {getattr(node, 'lineno', '?')}: {message}")

    def visit_Import(self, node):
        self._reject(node, "imports are not allowed")

    def visit_ImportFrom(self, node):
        self._reject(node, "imports are not allowed")

    def visit_Global(self, node):
        self._reject(node, "'global' is not allowed")

    def visit_Nonlocal(self, node):
        self._reject(node, "'nonlocal' is not allowed")

    def visit_Attribute(self, node):
        if node.attr.startswith("_"):
            self._reject(node, f"access to attribute '{node.attr}' is not allowed")
        elif node.attr in BLOCKED_ATTRIBUTES:
            self._reject(node, f"access to attribute '{node.attr}' is not allowed")
        elif isinstance(node.value, ast.Name) and node.value.id == "np" and node.attr not in NUMPY_NAMES:
            self._reject(node, f"'np.{node.attr}' is not available to scripts")
        self.generic_visit(node)

    def visit_Name(self, node):
        if node.id.startswith("__"):
            self._reject(node, f"name '{node.id}' is not allowed")
        elif isinstance(node.ctx, ast.Load) and node.id not in self.allowed_names:
            self._reject(node, f"name '{node.id}' is not available to scripts")
        self.generic_visit(node)


def _defined_names(tree: ast.AST) -> Set[str]:
    """Names the script binds itself (assignments, functions, arguments, loop targets)."""
    names = set()
    for node in ast.walk(tree):
        if isinstance(node, ast.Name) and isinstance(node.ctx, (ast.Store, ast.Del)):
            names.add(node.id)
        elif isinstance(node, (ast.FunctionDef, ast.ClassDef)):
            names.add(node.name)
        elif isinstance(node, ast.arg):
            names.add(node.arg)
        elif isinstance(node, ast.ExceptHandler) and node.name:
            names.add(node.name)
    return names


def screen_source(source: str, filename: str = "<strategy>") -> ast.Module:
    """
    Parse and screen strategy source.

    Returns:
        The parsed module

    Raises:
        ConfigError: On a syntax error or any restriction violation
    """
    try:
        tree = ast.parse(source, filename=filename, mode="exec")
    except SyntaxError as e:
        raise ConfigError(f"Strategy script has a syntax error at line {e.lineno}: {e.msg}") from e

    allowed = set(SAFE_BUILTINS) | set(MODULE_GLOBALS) | _defined_names(tree)
    allowed |= {"True", "False", "None"}
    screener = _ScriptScreener(allowed)
    screener.visit(tree)
    if screener.violations:
        raise ConfigError("Strategy script rejected: " + "; ".join(screener.violations))
    return tree


def _params_argument(tree: ast.AST) -> str:
    for node in ast.walk(tree):
        if isinstance(node, ast.FunctionDef) and node.name == ENTRY_POINT and len(node.args.args) >= 3:
            return node.args.args[2].arg
    return "params"


def discover_parameters(source: str) -> List[str]:
    """
    Names of the parameters a script reads, in order of first use.

    Recognises params["name"] and params.get("name", ...).
    """
    tree = screen_source(source)
    params_name = _params_argument(tree)
    uses: List[Tuple[int, int, str]] = []

    def is_params(node: ast.AST) -> bool:
        return isinstance(node, ast.Name) and node.id == params_name

    for node in ast.walk(tree):
        key = None
        if isinstance(node, ast.Subscript) and is_params(node.value):
            key = node.slice
        elif (
            isinstance(node, ast.Call)
            and isinstance(node.func, ast.Attribute)
            and node.func.attr == "get"
            and is_params(node.func.value)
            and node.args
        ):
            key = node.args[0]
        if isinstance(key, ast.Constant) and isinstance(key.value, str):
            uses.append((node.lineno, node.col_offset, key.value))
    found: List[str] = []
    for _, _, name in sorted(uses):
        if name not in found:
            found.append(name)
    return found


def _load_entry_point(source: str, filename: str):
    tree = screen_source(source, filename)
    namespace: Dict[str, Any] = {"__builtins__": dict(SAFE_BUILTINS), **MODULE_GLOBALS}
    try:
        exec(compile(tree, filename, "exec"), namespace)
    except Exception as e:
        raise ConfigError(f"Strategy script failed to load: {type(e).__name__}: {e}") from e

    entry = namespace.get(ENTRY_POINT)
    if not callable(entry):
        raise ConfigError(
            f"Strategy script must define {ENTRY_POINT}(signal_prices, execution_prices, params, ta)"
        )
    return entry


class ScriptStrategy:
    """
    Compiled strategy script usable as a SignalGenerator strategy.

    Pickles by source: a process worker recompiles the script instead of
    receiving the function object.
    """

    def __init__(self, source: str, name: str = "script"):
        self.source = source
        self.name = name
        self.__name__ = name
        self._entry = _load_entry_point(source, f"<{name}>")

    def __call__(self, signal_prices, execution_prices, params, ta=None):
        return self._entry(signal_prices, execution_prices, params, INDICATOR_NAMESPACE)

    def __reduce__(self):
        return (ScriptStrategy, (self.source, self.name))

    def __repr__(self) -> str:
        return f"ScriptStrategy({self.name!r})"


def compile_strategy(source: str, name: str = "script") -> ScriptStrategy:
    """Screen and compile strategy source into a picklable callable."""
    strategy = ScriptStrategy(source, name=name)
    logger.debug(f"Compiled strategy script '{name}' ({len(source.splitlines())} lines)")
    return strategy


def load_strategy_script(path: Union[str, Path]) -> ScriptStrategy:
    """Read a strategy script from disk and compile it (named after the file)."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Strategy script not found: {path}")
    return compile_strategy(path.read_text(encoding="utf-8"), name=path.stem)
