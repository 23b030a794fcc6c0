import ast
import inspect
from textwrap import dedent
from types import FunctionType
from types import ModuleType
from typing import Any
from typing import Callable
from typing import MutableMapping
from typing import Optional

from python_amphi.errors import TargetError
from python_amphi.parse import parse
from python_amphi.parse import ast_util

__all__ = ["SourceStream"]


class SourceStream:
    """
    The annotated source of one function, parsed with tags, along with the file and module it came from.

    Keeps what is needed to compile new copies of the function and declare them in the namespace of the module that
    defined the original.
    """

    name: str
    """Name of the original function"""

    filename: Optional[str]
    """The file that holds the function"""

    module: Optional[ModuleType]
    """The module the function was defined in. New copies of the function are declared in this module."""

    source_ast: ast.Module
    """
    The function's source after being parsed by the parse sub package (ie statements carry tags). Line numbers match
    the lines of the original file.
    """

    def __init__(self, func: Callable[..., Any]) -> None:
        if not isinstance(func, FunctionType):
            raise TargetError(f"Expected a function, got {type(func).__name__}")
        if func.__qualname__ != func.__name__:
            raise TargetError(f"Only module level functions are supported, got '{func.__qualname__}'")

        self.name = func.__name__
        self.filename = inspect.getsourcefile(func)
        self.module = inspect.getmodule(func)

        lines, line_no = inspect.getsourcelines(func)
        # pad with empty lines so that line numbers (of nodes, tags and syntax errors) match the file
        source = "\n" * (line_no - 1) + dedent("".join(lines))
        self.source_ast = parse(source, self.filename or "<unknown>")

    @property
    def namespace(self) -> MutableMapping[str, Any]:
        if self.module is None:
            raise TargetError(f"Can not find the module that defines '{self.name}'", filename=self.filename)
        return self.module.__dict__

    def add_new_function(self, tree: ast.Module) -> Callable[..., Any]:
        """
        Take the given function definition and 'add' it into the module by executing the definition within the
        namespace of the module. This ensures that, if the function makes reference to names or globals imported or
        defined in the module, then the new function will be able to run.

        Returns the new function, which is also bound to its own name in the module.
        """
        func_def = tree.body[-1]
        assert isinstance(func_def, (ast.FunctionDef, ast.AsyncFunctionDef))

        compiled = compile(ast_util.compilable(tree), self.filename or "<unknown>", mode="exec")
        namespace = self.namespace
        exec(compiled, namespace)
        return namespace[func_def.name]
