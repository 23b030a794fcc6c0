import ast
import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Dict
from typing import Iterator
from typing import List
from typing import Optional
from typing import Sequence

from python_amphi.errors import ModuleCycleError
from python_amphi.errors import ResolutionError
from python_amphi.parse import parse

__all__ = ["ModuleResolver", "PACKAGE_INIT", "SOURCE_SUFFIX"]

logger = logging.getLogger(__name__)

SOURCE_SUFFIX = ".py"
PACKAGE_INIT = "__init__.py"


class ModuleResolver:
    """
    Locate and load the source of out-of-line modules.

    A module `name` declared under the accumulated module path `a.b` is looked up as `<source_root>/a/b/name.py` and
    then as `<source_root>/a/b/name/__init__.py`. An explicit source path (from a source tag) is taken relative to the
    source root instead.

    The resolver also keeps the chain of files currently being expanded, so that a module which (directly or through
    other modules) refers back to itself is reported instead of recursing forever.
    """

    source_root: Path

    def __init__(self, source_root: Path) -> None:
        self.source_root = source_root
        self._chain: Dict[Path, str] = {}

    def candidates(self, module_path: Sequence[str]) -> List[Path]:
        """Files that may hold the module at `module_path` (the last entry is the module's own name)"""
        *parents, name = module_path
        directory = self.source_root.joinpath(*parents)
        return [directory / f"{name}{SOURCE_SUFFIX}", directory / name / PACKAGE_INIT]

    def locate(self, module_path: Sequence[str], explicit_path: Optional[str] = None) -> Path:
        name = module_path[-1]
        if explicit_path is not None:
            tried = [self.source_root / explicit_path]
        else:
            tried = self.candidates(module_path)

        for path in tried:
            if path.is_file():
                logger.debug("module %s resolved to %s", ".".join(module_path), path)
                return path

        raise ResolutionError(
            f"Fail to find module '{name}' (tried: {', '.join(str(p) for p in tried)})",
            module_name=name,
        )

    def load(self, path: Path, module_name: str) -> ast.Module:
        try:
            source = path.read_text(encoding="utf-8")
        except OSError as e:
            raise ResolutionError(f"Fail to read module '{module_name}': {e}", module_name=module_name, filename=path)
        return parse(source, str(path))

    @contextmanager
    def resolving(self, path: Path, module_name: str) -> Iterator[None]:
        """Mark `path` as being expanded for the duration of the block"""
        resolved = path.resolve()
        if resolved in self._chain:
            owner = self._chain[resolved]
            chain = " -> ".join(str(p) for p in [*self._chain, resolved])
            raise ModuleCycleError(f"Module '{owner}' includes itself: {chain}", module_name=owner, filename=path)
        self._chain[resolved] = module_name
        try:
            yield
        finally:
            del self._chain[resolved]
