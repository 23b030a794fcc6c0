import ast
import logging
from pathlib import Path
from pathlib import PurePosixPath
from typing import Dict
from typing import List
from typing import Mapping
from typing import Optional

from python_amphi.conversion.resolver import PACKAGE_INIT
from python_amphi.conversion.resolver import SOURCE_SUFFIX
from python_amphi.parse import ModuleDef
from python_amphi.parse import unparse

__all__ = ["render_module", "write_module", "GENERATED_HEADER"]

logger = logging.getLogger(__name__)

GENERATED_HEADER = "# AUTO-GENERATED by python-amphi from {source}. DO NOT EDIT.\n"


def render_module(
    module: ModuleDef, source: str = "<unknown>", parent: Optional[PurePosixPath] = None
) -> Dict[PurePosixPath, str]:
    """
    Render a (fully resolved) module as source files. Returns a mapping of file path (relative to the output
    directory) to file content.

    A module that contains other modules is written as a package (`name/__init__.py`), each nested module being
    replaced, in the parent, by an import of it. A module with no nested modules is written as `name.py`.
    """
    parent = parent or PurePosixPath()
    submodules = module.submodules

    body: List[ast.stmt] = []
    for statement in module.body:
        if isinstance(statement, ModuleDef):
            body.append(ast.ImportFrom(module=None, names=[ast.alias(name=statement.name)], level=1))
        else:
            body.append(statement)

    files: Dict[PurePosixPath, str] = {}
    if submodules:
        package_dir = parent / module.name
        path = package_dir / PACKAGE_INIT
        for submodule in submodules:
            files.update(render_module(submodule, source, package_dir))
    else:
        path = parent / f"{module.name}{SOURCE_SUFFIX}"

    code = unparse(ast.Module(body=body, type_ignores=[]))
    files[path] = GENERATED_HEADER.format(source=source) + (code + "\n" if code else "")
    return files


def write_module(files: Mapping[PurePosixPath, str], output_dir: Path) -> List[Path]:
    """Write rendered files below `output_dir`, creating directories as needed. Returns the written paths."""
    written = []
    for relative, content in files.items():
        path = output_dir / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        logger.info("wrote %s", path)
        written.append(path)
    return written
