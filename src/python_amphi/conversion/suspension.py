import ast
from typing import Any
from typing import Dict

from python_amphi.parse.ast_util import copy_ast_line_info

__all__ = ["SuspensionRemoval", "SYNCHRONOUS_METHODS", "SYNCHRONOUS_BUILTINS"]

SYNCHRONOUS_METHODS: Dict[str, str] = {
    "__aenter__": "__enter__",
    "__aexit__": "__exit__",
    "__aiter__": "__iter__",
    "__anext__": "__next__",
}
"""Special methods of the asynchronous protocols and their synchronous counterpart"""

SYNCHRONOUS_BUILTINS: Dict[str, str] = {
    "aiter": "iter",
    "anext": "next",
    "StopAsyncIteration": "StopIteration",
}
"""Builtins of the asynchronous protocols and their synchronous counterpart. Only bare loads of these are renamed."""


def _replace_node(node: ast.AST, new_type: type) -> ast.AST:
    """Build a node of `new_type` carrying over all fields, position and extra attributes (eg tags) of `node`"""
    fields = {f: getattr(node, f) for f in new_type._fields if hasattr(node, f)}
    new_node = new_type(**fields, **copy_ast_line_info(node))
    for attr, value in vars(node).items():
        if attr not in new_type._fields and not hasattr(new_node, attr):
            setattr(new_node, attr, value)
    return new_node


class SuspensionRemoval(ast.NodeTransformer):
    """
    Make a tree blocking: every `async def` becomes a `def`, `await X` becomes `X`, `async with` / `async for` become
    `with` / `for`, asynchronous comprehensions become regular ones and the names of the asynchronous protocols
    (`__aenter__`, `anext`, ...) are replaced by their synchronous equivalent. Attributes and definitions are only
    renamed for the special methods, so user methods like `client.anext()` are left alone.

    Running it on a tree that has nothing asynchronous in it changes nothing.
    """

    def visit_AsyncFunctionDef(self, node: ast.AsyncFunctionDef) -> Any:
        self.generic_visit(node)
        new_node = _replace_node(node, ast.FunctionDef)
        assert isinstance(new_node, ast.FunctionDef)
        new_node.name = SYNCHRONOUS_METHODS.get(new_node.name, new_node.name)
        return new_node

    def visit_FunctionDef(self, node: ast.FunctionDef) -> Any:
        self.generic_visit(node)
        node.name = SYNCHRONOUS_METHODS.get(node.name, node.name)
        return node

    def visit_Await(self, node: ast.Await) -> Any:
        return self.visit(node.value)

    def visit_AsyncWith(self, node: ast.AsyncWith) -> Any:
        self.generic_visit(node)
        return _replace_node(node, ast.With)

    def visit_AsyncFor(self, node: ast.AsyncFor) -> Any:
        self.generic_visit(node)
        return _replace_node(node, ast.For)

    def visit_comprehension(self, node: ast.comprehension) -> Any:
        self.generic_visit(node)
        node.is_async = 0
        return node

    def visit_Attribute(self, node: ast.Attribute) -> Any:
        self.generic_visit(node)
        node.attr = SYNCHRONOUS_METHODS.get(node.attr, node.attr)
        return node

    def visit_Name(self, node: ast.Name) -> Any:
        if isinstance(node.ctx, ast.Load):
            node.id = SYNCHRONOUS_BUILTINS.get(node.id, node.id)
        return node
