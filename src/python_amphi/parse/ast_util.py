import ast
from typing import Any
from typing import List
from typing import Mapping
from typing import Union

import ast_comments  # type: ignore
from typing_extensions import cast

STATEMENT_LIST_FIELDS = ("body", "orelse", "finalbody")
"""Fields of `ast` nodes which hold a list of statements (and therefore may hold comments and directives)"""


def parse(source: Union[str, bytes], filename: str = "<unknown>") -> ast.Module:
    """
    Replace the ast.parse method with one which picks up comments.
    """
    tree = ast_comments.parse(source, filename, "exec")
    assert isinstance(tree, ast.Module)
    return tree


def is_comment(node: Any) -> bool:
    return isinstance(node, ast_comments.Comment)


def is_statement(node: Any) -> bool:
    """True for real statements. Comments (which ast_comments places in statement lists) do not count."""
    return isinstance(node, ast.stmt) and not is_comment(node)


def copy_ast_line_info(node: ast.AST) -> Mapping[str, Any]:
    """Extract the line and position attributes from a node so they can initialize a new node"""
    return dict(
        lineno=getattr(node, "lineno", 1),
        col_offset=getattr(node, "col_offset", 0),
        end_lineno=getattr(node, "end_lineno", None),
        end_col_offset=getattr(node, "end_col_offset", None),
    )


class StatementListTransformer(ast.NodeTransformer):
    """
    A type of visitor which gets the chance to rewrite every statement list in the tree as a whole (ie look at the
    series of statements A,B,C...Z in a body and produce a new series), rather than one node at a time.

    Note this is a Depth-First walk, meaning the statement lists of inner blocks are rewritten before the list which
    contains the block.
    """

    def rewrite_statements(self, owner: ast.AST, field: str, statements: List[Any]) -> List[Any]:
        """
        Return the new content for the statement list `field` of `owner`.

        Override this in subclass transformers.
        """
        _ = owner, field
        return statements

    def rewrite_other_list(self, owner: ast.AST, field: str, values: List[Any]) -> List[Any]:
        """Same as `rewrite_statements` but for lists which do not hold statements (eg handlers, decorators)"""
        _ = owner, field
        return values

    def generic_visit(self, node: ast.AST) -> Any:
        """Implementation adapted from generic_visit() on NodeTransformer"""
        for field, old_value in ast.iter_fields(node):
            if isinstance(old_value, list):
                new_values: List[Any] = []
                for value in old_value:
                    if isinstance(value, ast.AST):
                        value = self.visit(value)
                        if value is None:
                            continue
                        elif not isinstance(value, ast.AST):
                            new_values.extend(value)
                            continue
                    new_values.append(value)
                if field in STATEMENT_LIST_FIELDS:
                    old_value[:] = self.rewrite_statements(node, field, new_values)
                else:
                    old_value[:] = self.rewrite_other_list(node, field, new_values)
            elif isinstance(old_value, ast.AST):
                new_node = self.visit(old_value)
                if new_node is None:
                    delattr(node, field)
                else:
                    setattr(node, field, new_node)

        return node


class StripComments(StatementListTransformer):
    """Remove every comment node so that the tree can be run through `compile()`"""

    def rewrite_statements(self, owner: ast.AST, field: str, statements: List[Any]) -> List[Any]:
        return [s for s in statements if not is_comment(s)]

    def rewrite_other_list(self, owner: ast.AST, field: str, values: List[Any]) -> List[Any]:
        return [v for v in values if not is_comment(v)]


class PadEmptyBodies(StatementListTransformer):
    """
    Removing statements can leave a block with nothing in it (or only comments in it). Python requires at least one
    statement per block, so add a `pass` wherever that happens.
    """

    def rewrite_statements(self, owner: ast.AST, field: str, statements: List[Any]) -> List[Any]:
        if any(map(is_statement, statements)):
            return statements
        if field == "body" and not isinstance(owner, ast.Module):
            statements.append(ast.Pass(**copy_ast_line_info(owner)))
        elif field == "finalbody" and isinstance(owner, ast.Try) and not owner.handlers:
            # a `try` needs either handlers or a (non-empty) `finally`
            statements.append(ast.Pass(**copy_ast_line_info(owner)))
        return statements


def compilable(tree: ast.Module) -> ast.Module:
    """Strip comments, fill emptied blocks and fix locations so the tree can be compiled"""
    tree = cast(ast.Module, StripComments().visit(tree))
    tree = cast(ast.Module, PadEmptyBodies().visit(tree))
    return ast.fix_missing_locations(tree)
