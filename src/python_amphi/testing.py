"""
Write a test once, against the annotated module, and have it run against both generated variants:

    @python_amphi.test
    @pytest.mark.asyncio
    async def test_fetch():
        from .amphi import fetch
        assert await fetch() == 1

leaves two tests in the module: `test_fetch` (the asynchronous variant, importing from `.asynchronous`) and
`test_fetch_blocking_version` (the blocking variant, importing from `.blocking`, with `await` and the asyncio mark
removed). Variant directives inside the test body work the same way as in the annotated module.
"""
import ast
import builtins
import copy
import logging
from typing import Any
from typing import Callable
from typing import List
from typing import Mapping
from typing import Optional
from typing import overload
from typing import Tuple
from typing import TypeVar
from typing import Union

from more_itertools import one

from python_amphi.conversion import SuspensionRemoval
from python_amphi.conversion import VariantConversion
from python_amphi.errors import DirectiveError
from python_amphi.options import DEFAULT_TEST_SCOPE
from python_amphi.options import Variant
from python_amphi.parse import ast_util
from python_amphi.runner import SourceStream

__all__ = ["test", "BLOCKING_SUFFIX", "ASYNC_TEST_MARKS"]

logger = logging.getLogger(__name__)

_F = TypeVar("_F", bound=Callable[..., Any])

BLOCKING_SUFFIX = "_blocking_version"
"""Appended to the name of the blocking copy of a test"""

ASYNC_TEST_MARKS = ("asyncio", "anyio", "trio")
"""`pytest.mark.<name>` decorators that run a test in an event loop. The blocking copy does not need them."""


def _dotted_name(expr: ast.expr) -> Optional[List[str]]:
    """Return ['a', 'b', 'c'] for `a.b.c` or `a.b.c(...)`, None for anything else"""
    if isinstance(expr, ast.Call):
        expr = expr.func
    parts = []
    while isinstance(expr, ast.Attribute):
        parts.append(expr.attr)
        expr = expr.value
    if not isinstance(expr, ast.Name):
        return None
    parts.append(expr.id)
    return parts[::-1]


def _resolve(expr: ast.expr, namespace: Mapping[str, Any]) -> Any:
    """Look up the object a decorator expression refers to, without evaluating any call"""
    parts = _dotted_name(expr)
    if parts is None:
        return None
    first, *rest = parts
    obj = namespace[first] if first in namespace else getattr(builtins, first, None)
    for part in rest:
        obj = getattr(obj, part, None)
    return obj


def _is_async_test_mark(expr: ast.expr) -> bool:
    parts = _dotted_name(expr)
    return parts is not None and len(parts) >= 2 and parts[-2] == "mark" and parts[-1] in ASYNC_TEST_MARKS


def _split_scope(scope: str) -> Tuple[Optional[str], str]:
    """'mylib.amphi' -> ('mylib', 'amphi'), 'amphi' -> (None, 'amphi')"""
    parts = scope.split(".")
    if not all(part.isidentifier() for part in parts):
        raise DirectiveError(f"Test scope must be a (dotted) module name like \"{DEFAULT_TEST_SCOPE}\", got '{scope}'")
    return ".".join(parts[:-1]) or None, parts[-1]


class PairedTest:
    """Builds the asynchronous and the blocking copy of one test function"""

    def __init__(self, scope: str = DEFAULT_TEST_SCOPE) -> None:
        self.package, self.mod_name = _split_scope(scope)

    def __call__(self, func: _F) -> _F:
        stream = SourceStream(func)
        blocking_tree = copy.deepcopy(stream.source_ast)

        asynchronous_def = self.function_def(stream.source_ast)
        own = self.find_own_decorator(asynchronous_def, func.__globals__)
        if own is not None:
            # the decorators from ours upward are applied by Python to whatever we return
            del asynchronous_def.decorator_list[: own + 1]
        VariantConversion(Variant.ASYNCHRONOUS, self.mod_name, package=self.package).convert(stream.source_ast)

        blocking_def = self.function_def(blocking_tree)
        blocking_def.decorator_list = [
            decorator
            for ix, decorator in enumerate(blocking_def.decorator_list)
            if ix != own and not _is_async_test_mark(decorator)
        ]
        VariantConversion(Variant.BLOCKING, self.mod_name, package=self.package).convert(blocking_tree)
        SuspensionRemoval().visit(blocking_tree)
        blocking_def = self.function_def(blocking_tree)
        blocking_def.name = f"{stream.name}{BLOCKING_SUFFIX}"

        logger.debug("adding %s next to %s", blocking_def.name, stream.name)
        stream.add_new_function(blocking_tree)
        return stream.add_new_function(stream.source_ast)  # type: ignore[return-value]

    @staticmethod
    def function_def(tree: ast.Module) -> Union[ast.FunctionDef, ast.AsyncFunctionDef]:
        func_def = one(filter(ast_util.is_statement, tree.body))
        assert isinstance(func_def, (ast.FunctionDef, ast.AsyncFunctionDef))
        return func_def

    @staticmethod
    def find_own_decorator(
        func_def: Union[ast.FunctionDef, ast.AsyncFunctionDef], namespace: Mapping[str, Any]
    ) -> Optional[int]:
        for ix, decorator in enumerate(func_def.decorator_list):
            if _resolve(decorator, namespace) is test:
                return ix
        return None


@overload
def test(scope: _F) -> _F:
    ...


@overload
def test(scope: str = DEFAULT_TEST_SCOPE) -> Callable[[_F], _F]:
    ...


def test(scope: Union[str, _F] = DEFAULT_TEST_SCOPE) -> Union[_F, Callable[[_F], _F]]:
    """
    Decorator for a test written against the annotated module. Use it bare (`@test`) or with the name of the
    annotated module (`@test("amphi")` / `@test("mylib.amphi")`).
    """
    if isinstance(scope, str):
        return PairedTest(scope)
    if callable(scope):
        return PairedTest()(scope)
    raise DirectiveError(f"Test scope must be a string like \"{DEFAULT_TEST_SCOPE}\", got {scope!r}")


test.__test__ = False  # type: ignore[attr-defined]
