import copy
import logging
from pathlib import Path
from pathlib import PurePosixPath
from typing import Dict
from typing import List
from typing import Optional
from typing import Tuple
from typing import Union

from python_amphi.conversion import ModuleResolver
from python_amphi.conversion import SuspensionRemoval
from python_amphi.conversion import VariantConversion
from python_amphi.conversion import render_module
from python_amphi.conversion import write_module
from python_amphi.conversion.resolver import PACKAGE_INIT
from python_amphi.conversion.resolver import SOURCE_SUFFIX
from python_amphi.errors import TargetError
from python_amphi.options import GenerationOptions
from python_amphi.options import Mode
from python_amphi.options import Variant
from python_amphi.parse import ModuleDef

__all__ = ["duplicate", "load_root", "generate", "render", "generate_files"]

logger = logging.getLogger(__name__)


def duplicate(root: ModuleDef, mode: Mode = Mode.BOTH) -> Dict[Variant, ModuleDef]:
    """
    Deep copy the annotated root module once per variant selected by `mode` and rename each copy after its variant.
    The copies share nothing, so each can be converted independently. Copies are returned in emission order.
    """
    copies = {}
    for variant in mode.variants:
        variant_copy = copy.deepcopy(root)
        variant_copy.name = variant.value
        copies[variant] = variant_copy
    return copies


def load_root(source: Path, resolver: ModuleResolver) -> Tuple[ModuleDef, Path]:
    """
    Read the root module. `source` is either a `.py` file or a package directory (holding an `__init__.py`); the
    root module is named after it. Returns the module and the file it was read from.
    """
    if source.is_dir() and (source / PACKAGE_INIT).is_file():
        origin = source / PACKAGE_INIT
    elif source.is_file() and source.suffix == SOURCE_SUFFIX:
        origin = source
    else:
        raise TargetError(f"Expected a Python module or a package directory, got '{source}'", filename=source)

    name = source.stem
    if not name.isidentifier():
        raise TargetError(f"'{name}' is not a valid module name", filename=source)

    tree = resolver.load(origin, name)
    root = ModuleDef(name=name, body=tree.body, lineno=1, col_offset=0, end_lineno=None, end_col_offset=None)
    return root, origin


def generate(source: Union[str, Path], options: Optional[GenerationOptions] = None) -> Dict[Variant, ModuleDef]:
    """
    Produce the variant trees for the annotated module at `source`. Nothing is written; see `generate_files()`.

    The asynchronous variant (when selected) comes first in the result, then the blocking variant.
    """
    options = options or GenerationOptions()
    source = options.cwd / source
    source_root = options.source_root or source.parent
    resolver = ModuleResolver(source_root)

    root, origin = load_root(source, resolver)
    logger.debug(
        "generating %s from %s (source root: %s)", ", ".join(map(str, options.mode.variants)), origin, source_root
    )

    variants = duplicate(root, options.mode)
    for variant, tree in variants.items():
        conversion = VariantConversion(variant, root.name, resolver, package=options.package)
        conversion.convert(tree, origin)
        if variant is Variant.BLOCKING:
            SuspensionRemoval().visit(tree)
    return variants


def render(source: Union[str, Path], options: Optional[GenerationOptions] = None) -> Dict[PurePosixPath, str]:
    """Generate the variants and render them as source files, without touching the disk"""
    options = options or GenerationOptions()
    files: Dict[PurePosixPath, str] = {}
    for tree in generate(source, options).values():
        files.update(render_module(tree, source=str(source)))
    return files


def generate_files(source: Union[str, Path], options: Optional[GenerationOptions] = None) -> List[Path]:
    """
    Generate the variants and write them next to the root module (or into `options.output_dir`). Every file is
    rendered before the first one is written, so a failing generation leaves nothing behind.
    """
    options = options or GenerationOptions()
    files = render(source, options)
    output_dir = options.cwd / options.output_dir if options.output_dir else (options.cwd / source).parent
    return write_module(files, output_dir)
