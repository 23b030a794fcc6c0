import ast
import logging
from pathlib import Path
from typing import Any
from typing import List
from typing import Optional
from typing import TypeVar

from python_amphi.errors import AmphiError
from python_amphi.errors import MalformedTagError
from python_amphi.errors import ResolutionError
from python_amphi.options import Variant
from python_amphi.parse import DECLARATION_TYPES
from python_amphi.parse import Erased
from python_amphi.parse import finalize
from python_amphi.parse import ModuleDef
from python_amphi.parse import SOURCE_TAG
from python_amphi.parse import VARIANT_TAG
from python_amphi.parse import has_tag
from python_amphi.parse import remove_matching_tag
from python_amphi.parse import take_tag
from python_amphi.parse.ast_util import copy_ast_line_info
from python_amphi.conversion.resolver import ModuleResolver

__all__ = ["VariantConversion"]

logger = logging.getLogger(__name__)

_TreeT = TypeVar("_TreeT", ast.Module, ModuleDef)


class VariantConversion(ast.NodeTransformer):
    """
    Tailor one copy of the annotated tree to one variant:

      * fill out-of-line module declarations with the (recursively converted) content of their source file
      * replace the root module's name with the variant's name in self-referencing imports
      * drop statements tagged for the other variant, and strip the tags of statements tagged for this one
    """

    variant: Variant
    """The variant this copy is being tailored to"""

    mod_name: str
    """Name of the annotated root module. This is the name that self-referencing imports use."""

    package: Optional[str]
    """Dotted package that contains the root module, if absolute imports of it should be rewritten too"""

    resolver: Optional[ModuleResolver]
    """Used to load out-of-line modules. Without one, out-of-line modules are a resolution error."""

    def __init__(
        self,
        variant: Variant,
        mod_name: str,
        resolver: Optional[ModuleResolver] = None,
        package: Optional[str] = None,
    ) -> None:
        self.variant = variant
        self.mod_name = mod_name
        self.resolver = resolver
        self.package = package
        self._module_path: List[str] = []
        self._filename: Optional[str] = None

    def convert(self, tree: _TreeT, origin: Optional[Path] = None) -> _TreeT:
        """
        Convert `tree` in place and return it. The tree is either the (renamed) copy of the root module or a plain
        `ast.Module` (eg a single test function). `origin` is the file the tree was read from, if any.
        """
        self._module_path = [self.mod_name]
        self._filename = str(origin) if origin is not None else None
        try:
            if isinstance(tree, ModuleDef):
                # the root is already loaded, only its nested modules need resolving
                if origin is not None and self.resolver is not None:
                    with self.resolver.resolving(origin, self.mod_name):
                        self.generic_visit(tree)
                else:
                    self.generic_visit(tree)
            else:
                self.visit(tree)
        except AmphiError as e:
            if e.filename is None:
                e.filename = self._filename
            raise
        result = finalize(tree)
        assert isinstance(result, (ast.Module, ModuleDef))
        return result  # type: ignore[return-value]

    def visit(self, node: ast.AST) -> Any:
        if isinstance(node, ast.stmt):
            tailored = self.tailor_version(node)
            if tailored is not node:
                return tailored
        return super().visit(node)

    def tailor_version(self, node: ast.stmt) -> Optional[ast.stmt]:
        """
        Keep only statements that conform to the current variant. A declaration of the other variant is removed, any
        other statement of the other variant is replaced with an Erased node. Statements of this variant lose their
        tag.
        """
        preserve = self.variant.value
        remove = self.variant.other.value
        if not (has_tag(node, preserve) or has_tag(node, remove)):
            return node

        while remove_matching_tag(node, VARIANT_TAG, preserve):
            pass
        if remove_matching_tag(node, VARIANT_TAG, remove):
            logger.debug("dropping %s at line %s from %s", type(node).__name__, getattr(node, "lineno", "?"), preserve)
            if isinstance(node, DECLARATION_TYPES):
                return None
            return Erased(**copy_ast_line_info(node))
        return node

    def visit_ModuleDef(self, node: ModuleDef) -> ModuleDef:
        self._module_path.append(node.name)
        try:
            self.expand_module(node)
        finally:
            self._module_path.pop()
        return node

    def expand_module(self, node: ModuleDef) -> None:
        """
        Fill a module declaration with its implementation. A module with an empty body is treated as out-of-line, even
        when it was declared inline.
        """
        explicit_path = take_tag(node, SOURCE_TAG)
        if node.is_inline:
            if explicit_path is not None:
                raise MalformedTagError(
                    f"Module '{node.name}' has a body, it can not also be read from '{explicit_path}'",
                    lineno=node.lineno,
                )
            self.generic_visit(node)
            return

        if self.resolver is None:
            raise ResolutionError(
                f"Module '{node.name}' is declared out-of-line but no source root is available",
                module_name=node.name,
                lineno=node.lineno,
            )
        try:
            path = self.resolver.locate(self._module_path, explicit_path)
        except ResolutionError as e:
            e.filename, e.lineno = self._filename, node.lineno
            raise

        parent_filename, self._filename = self._filename, str(path)
        try:
            with self.resolver.resolving(path, node.name):
                fragment = self.resolver.load(path, node.name)
                self.visit(fragment)
        finally:
            self._filename = parent_filename

        node.body = fragment.body

    def visit_Import(self, node: ast.Import) -> ast.Import:
        for alias in node.names:
            parts = alias.name.split(".")
            rest = self._strip_prefix(parts, level=0)
            if rest and rest[0] == self.mod_name:
                alias.name = ".".join(parts[: len(parts) - len(rest)] + [self.variant.value] + rest[1:])
        return node

    def visit_ImportFrom(self, node: ast.ImportFrom) -> ast.ImportFrom:
        parts = node.module.split(".") if node.module else []
        rest = self._strip_prefix(parts, level=node.level)
        if rest is None:
            # external, eg: `from otherlib.amphi import x`
            return node
        if rest:
            if rest[0] == self.mod_name:
                node.module = ".".join(parts[: len(parts) - len(rest)] + [self.variant.value] + rest[1:])
        elif node.level or parts:
            # the module itself is imported by name: `from . import amphi` or `from mylib import amphi as a`
            for alias in node.names:
                if alias.name == self.mod_name:
                    alias.name = self.variant.value
        return node

    def _strip_prefix(self, parts: List[str], level: int) -> Optional[List[str]]:
        """
        Remove the package prefix (for absolute imports, when a package is configured). Return the remaining segments
        or None if the import does not start with the prefix.
        """
        if level or not self.package:
            return parts
        prefix = self.package.split(".")
        if parts[: len(prefix)] != prefix:
            return None
        return parts[len(prefix) :]

