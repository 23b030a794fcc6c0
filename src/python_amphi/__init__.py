from ._version import version as __version__

__all__ = [
    "__version__",
    "generate",
    "generate_files",
    "render",
    "duplicate",
    "test",
    "VariantConversion",
    "SuspensionRemoval",
    "render_module",
    "GenerationOptions",
    "Mode",
    "Variant",
    "AmphiError",
    "DirectiveError",
    "TargetError",
    "ResolutionError",
    "ModuleCycleError",
    "MalformedTagError",
]

from .conversion import SuspensionRemoval, VariantConversion, render_module
from .errors import AmphiError, DirectiveError, MalformedTagError, ModuleCycleError, ResolutionError, TargetError
from .main import duplicate, generate, generate_files, render
from .options import GenerationOptions, Mode, Variant
from .testing import test
