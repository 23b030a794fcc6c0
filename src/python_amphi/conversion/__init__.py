"""
The passes which turn one annotated module tree into a variant of it, plus reading the out-of-line modules the tree
refers to and writing the result back out as source files.
"""
from .resolver import ModuleResolver
from .suspension import SuspensionRemoval
from .variant_filter import VariantConversion
from .writer import render_module, write_module

__all__ = ["ModuleResolver", "SuspensionRemoval", "VariantConversion", "render_module", "write_module"]
