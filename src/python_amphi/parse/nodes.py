"""
In this module, the standard AST tech is extended to add:

    * the ability to identify "directives" that are embedded in comments and attach them, as tags, to the statement
      that follows them
    * a module declaration node, so that a single source tree can describe nested modules
    * an explicit "erased" node, left in place of statements removed by a variant filter

"""
import ast
from typing import Any
from typing import List
from typing import Optional
from typing import Tuple
from typing import Union

import ast_comments  # type: ignore
from typing_extensions import cast

from python_amphi.errors import MalformedTagError
from python_amphi.errors import TargetError
from python_amphi.parse import ast_util
from python_amphi.parse.directives import AmphiDirective
from python_amphi.parse.directives import LineDirective
from python_amphi.parse.directives import ModuleDirective
from python_amphi.parse.directives import ModuleEndDirective
from python_amphi.parse.directives import ModuleStartDirective
from python_amphi.parse.tags import SOURCE_TAG
from python_amphi.parse.tags import Tag
from python_amphi.parse.tags import TAGS_ATTRIBUTE
from python_amphi.parse.tags import tags_of

__all__ = ["ModuleDef", "Erased", "parse", "unparse", "finalize", "DECLARATION_TYPES"]


class ModuleDef(ast.stmt):
    """
    A named module. Inline modules have a body; out-of-line modules have an empty body until their source file has
    been resolved and spliced in.
    """

    _fields = ("name", "body")

    name: str
    body: List[ast.stmt]

    @property
    def is_inline(self) -> bool:
        return any(map(ast_util.is_statement, self.body))

    @property
    def submodules(self) -> List["ModuleDef"]:
        return [s for s in self.body if isinstance(s, ModuleDef)]


class Erased(ast.stmt):
    """Stands in for a statement that was removed from the tree. Carries nothing, compiles to nothing."""

    _fields = ()


DECLARATION_TYPES: Tuple[type, ...] = (ast.FunctionDef, ast.AsyncFunctionDef, ast.ClassDef, ModuleDef)
"""Statements that are dropped outright (rather than erased in place) when they belong to the other variant"""


def parse(source: Union[str, bytes], filename: str = "<unknown>") -> ast.Module:
    """
    Wrap the ast_comments parser (which wraps standard ast.parse()) in order to produce a tree with all the stock ast
    node types **plus** tags on statements and ModuleDef nodes.
    """
    try:
        return convert_tree(ast_util.parse(source, filename))
    except MalformedTagError as e:
        if e.filename is None:
            e.filename = filename
        raise
    except TargetError as e:
        if e.filename is None:
            e.filename = filename
        raise


def convert_tree(tree: ast.Module) -> ast.Module:
    """
    Given an output from ast_comments.parse(), create a new tree where directive comments have been consumed: line
    directives become tags on the following statement, module directives become ModuleDef nodes.
    """
    return cast(ast.Module, DirectiveAttacher().visit(tree))


class _OpenModule:
    """A module started with a begin directive that is still collecting its body"""

    def __init__(self, start: Optional[ModuleStartDirective], tags: List[Tag]) -> None:
        self.start = start
        self.tags = tags
        self.body: List[Any] = []
        self.pending: List[Tag] = []


class DirectiveAttacher(ast_util.StatementListTransformer):
    """Walk every statement list and consume the directive comments found in it"""

    def rewrite_statements(self, owner: ast.AST, field: str, statements: List[Any]) -> List[Any]:
        module_level = isinstance(owner, (ast.Module, ModuleDef))
        stack = [_OpenModule(None, [])]

        for node in statements:
            top = stack[-1]
            directive = self.as_directive(node)
            if directive is None:
                if ast_util.is_statement(node) and top.pending:
                    self.check_source_tags(node, top.pending)
                    tags_of(node).extend(top.pending)
                    top.pending = []
                top.body.append(node)
            elif isinstance(directive, LineDirective):
                top.pending.append(directive.to_tag())
            else:
                if not module_level:
                    raise TargetError(
                        f"Module declaration '{directive.argument}' is only allowed at module level",
                        lineno=directive.lineno,
                    )
                if isinstance(directive, ModuleDirective):
                    top.body.append(self.module_def(directive.module_name, [], top.pending, node))
                    top.pending = []
                elif isinstance(directive, ModuleStartDirective):
                    stack.append(_OpenModule(directive, top.pending))
                    top.pending = []
                elif isinstance(directive, ModuleEndDirective):
                    start = top.start
                    if start is None or not directive.matches(start):
                        directive.raise_end_does_not_match_start(start)
                    self.raise_for_dangling(top.pending, f"the end of module '{start.module_name}'")
                    stack.pop()
                    stack[-1].body.append(self.module_def(start.module_name, top.body, top.tags, start, node))

        if len(stack) > 1:
            start = stack[-1].start
            assert start is not None
            raise MalformedTagError(
                f"Module {start.module_name} started on line {start.lineno} but never ended (expected an end "
                f"directive)",
                lineno=start.lineno,
            )
        self.raise_for_dangling(stack[0].pending, "the end of the block")
        return stack[0].body

    def rewrite_other_list(self, owner: ast.AST, field: str, values: List[Any]) -> List[Any]:
        for value in values:
            directive = self.as_directive(value)
            if directive is not None:
                directive.raise_unexpected("directives must precede a statement")
        return values

    @staticmethod
    def as_directive(node: Any) -> Optional[AmphiDirective]:
        if not ast_util.is_comment(node):
            return None
        directive = AmphiDirective.as_directive(node.lineno, node.value)
        if directive is not None and node.inline:
            raise MalformedTagError(
                f"amphi directives are not allowed in inline comments (line {node.lineno})", lineno=node.lineno
            )
        return directive

    @staticmethod
    def module_def(name: str, body: List[Any], tags: List[Tag], *located: Any) -> ModuleDef:
        first, last = located[0], located[-1]
        module = ModuleDef(
            name=name,
            body=body,
            lineno=first.lineno,
            col_offset=getattr(first, "col_offset", 0),
            end_lineno=getattr(last, "end_lineno", last.lineno),
            end_col_offset=getattr(last, "end_col_offset", 0),
        )
        tags_of(module).extend(tags)
        return module

    @staticmethod
    def check_source_tags(node: ast.AST, tags: List[Tag]) -> None:
        for tag in tags:
            if tag.name == SOURCE_TAG:
                raise TargetError(
                    f"'{SOURCE_TAG}' can only be attached to a module declaration, not to "
                    f"{type(node).__name__} (line {getattr(node, 'lineno', '?')})",
                    lineno=tag.lineno,
                )

    @staticmethod
    def raise_for_dangling(pending: List[Tag], where: str) -> None:
        if pending:
            raise MalformedTagError(
                f"One or more amphi directives appear right before {where} (first at line {pending[0].lineno}). "
                f"Directives must be followed by the statement they apply to.",
                lineno=pending[0].lineno,
            )


class _DropErased(ast_util.StatementListTransformer):
    def rewrite_statements(self, owner: ast.AST, field: str, statements: List[Any]) -> List[Any]:
        return [s for s in statements if not isinstance(s, Erased)]


def finalize(tree: ast.AST) -> ast.AST:
    """Remove Erased nodes and fill any block emptied by their removal with `pass`"""
    tree = _DropErased().visit(tree)
    return ast_util.PadEmptyBodies().visit(tree)


class Unparser(ast_comments._Unparser):  # type: ignore
    """Unparse with directives: tags, module declarations and erased statements are rendered as source"""

    _skip_newline = False

    def traverse(self, node: Any) -> None:
        tags = getattr(node, TAGS_ATTRIBUTE, None) if isinstance(node, ast.AST) else None
        if tags:
            spaced = isinstance(node, (ast.FunctionDef, ast.AsyncFunctionDef, ast.ClassDef))
            if spaced:
                self.maybe_newline()
            for tag in tags:
                self.fill(tag.render())
            # keep the tags right above the definition they belong to
            self._skip_newline = spaced
        super().traverse(node)

    def maybe_newline(self) -> None:
        if self._skip_newline:
            self._skip_newline = False
            return
        super().maybe_newline()

    def visit_ModuleDef(self, node: ast.AST) -> None:
        assert isinstance(node, ModuleDef)
        if not node.body:
            self.fill(f"# {ModuleDirective.FAMILY}: {node.name}")
            return
        self.fill(f"# {ModuleStartDirective.FAMILY}: {node.name}")
        self.traverse(node.body)
        self.fill(f"# {ModuleEndDirective.FAMILY}: {node.name}")

    def visit_Erased(self, node: ast.AST) -> None:
        self.fill("pass")


def unparse(ast_obj: ast.AST) -> str:
    return cast(str, Unparser().visit(ast_obj))
