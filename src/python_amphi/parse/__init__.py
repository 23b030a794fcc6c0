"""
In this subpackage, we focus on parsing annotated Python source into an AST which will contain a few non-standard
nodes and attributes in it. The output is a tree which formalizes our interpretation of the amphi directives written
into the source as comments:

    * variant and source directives become tags on the statement that follows them
    * module directives become ModuleDef nodes

During troubleshooting, this tree can be inspected using `ast.dump()` or written as code using `unparse()`. When
written as code, tags and module declarations appear again as directive comments.
"""

from .nodes import DECLARATION_TYPES, Erased, ModuleDef, finalize, parse, unparse
from .tags import SOURCE_TAG, VARIANT_TAG, Tag, has_tag, remove_matching_tag, tags_of, take_tag

__all__ = [
    "parse",
    "unparse",
    "finalize",
    "ModuleDef",
    "Erased",
    "DECLARATION_TYPES",
    "Tag",
    "VARIANT_TAG",
    "SOURCE_TAG",
    "tags_of",
    "has_tag",
    "take_tag",
    "remove_matching_tag",
]
