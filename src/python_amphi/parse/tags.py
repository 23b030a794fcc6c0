"""
Tags are the parsed form of directive comments. A tag is attached to the statement that follows the directive and
is stored on the node itself, so any `ast` node can carry tags and every pass reads and removes them the same way.
"""
import ast
from dataclasses import dataclass
from typing import List
from typing import Optional

__all__ = [
    "Tag",
    "VARIANT_TAG",
    "SOURCE_TAG",
    "tags_of",
    "add_tag",
    "has_tag",
    "take_tag",
    "remove_matching_tag",
]

VARIANT_TAG = "amphi"
"""Tag family scoping a statement to one variant. The argument is the variant name."""

SOURCE_TAG = "amphi-path"
"""Tag family naming the file that holds an out-of-line module. The argument is a quoted path literal."""

TAGS_ATTRIBUTE = "amphi_tags"
"""Name of the attribute holding the tags of a node"""


@dataclass(frozen=True)
class Tag:
    name: str
    argument: str
    lineno: int = 0
    """Source line of the directive that produced this tag (0 if the tag was built by hand)"""

    def render(self) -> str:
        if self.name == SOURCE_TAG:
            return f"# {self.name}: {self.argument!r}"
        return f"# {self.name}: {self.argument}"


def tags_of(node: ast.AST) -> List[Tag]:
    """The (mutable) list of tags attached to the node. The list is created on first use."""
    tags = getattr(node, TAGS_ATTRIBUTE, None)
    if tags is None:
        tags = []
        setattr(node, TAGS_ATTRIBUTE, tags)
    return tags


def add_tag(node: ast.AST, tag: Tag) -> None:
    tags_of(node).append(tag)


def has_tag(node: ast.AST, match_value: str) -> bool:
    """True if any tag on the node has the given argument"""
    return any(tag.argument == match_value for tag in getattr(node, TAGS_ATTRIBUTE, ()))


def take_tag(node: ast.AST, tag_name: str) -> Optional[str]:
    """Remove the first tag of the given family and return its argument"""
    tags = getattr(node, TAGS_ATTRIBUTE, [])
    for ix, tag in enumerate(tags):
        if tag.name == tag_name:
            del tags[ix]
            return tag.argument
    return None


def remove_matching_tag(node: ast.AST, tag_name: str, match_value: str) -> bool:
    """Remove the first tag matching both family and argument. Return whether a tag was removed."""
    tags = getattr(node, TAGS_ATTRIBUTE, [])
    for ix, tag in enumerate(tags):
        if tag.name == tag_name and tag.argument == match_value:
            del tags[ix]
            return True
    return False
