import ast
import re
from dataclasses import dataclass
from typing import ClassVar
from typing import NoReturn
from typing import Optional

from python_amphi.errors import MalformedTagError
from python_amphi.options import Variant
from python_amphi.parse.tags import SOURCE_TAG
from python_amphi.parse.tags import Tag
from python_amphi.parse.tags import VARIANT_TAG

__all__ = [
    "AmphiDirective",
    "LineDirective",
    "VariantDirective",
    "SourceDirective",
    "ModuleDirective",
    "ModuleStartDirective",
    "ModuleEndDirective",
]

_DIRECTIVE_RE = re.compile(r"^#\s*(?P<family>amphi(?:-[A-Za-z_]+)?)\s*:\s*(?P<argument>.*?)\s*$")


@dataclass
class AmphiDirective:
    """A directive parsed from a single, whole-line comment: `# <family>: <argument>`"""

    FAMILY: ClassVar[Optional[str]] = None

    lineno: int
    family: str
    argument: str

    @classmethod
    def as_directive(cls, lineno: int, comment: str) -> Optional["AmphiDirective"]:
        """
        If the given comment is a directive, find the subclass that matches it and instantiate it. Otherwise, return
        None
        """
        match = _DIRECTIVE_RE.match(comment.strip())
        if match is None:
            return None
        result = cls._as_directive(lineno, match.group("family"), match.group("argument"))
        if result is None:
            raise MalformedTagError(
                f"Comment looks like an amphi directive but '{match.group('family')}' is unrecognized. Possible "
                f"spelling error for: '{comment.strip()}'?",
                lineno=lineno,
            )
        return result

    @classmethod
    def _as_directive(cls, lineno: int, family: str, argument: str) -> Optional["AmphiDirective"]:
        """
        Recursive worker
        """
        if cls.FAMILY is None:
            for sub_cls in cls.__subclasses__():
                result = sub_cls._as_directive(lineno, family, argument)
                if result is not None:
                    return result
        elif family == cls.FAMILY:
            if not argument:
                raise MalformedTagError(f"Directive '{family}' requires an argument", lineno=lineno)
            directive = cls(lineno, family, argument)
            directive.validate()
            return directive
        return None

    def validate(self) -> None:
        """Check the argument. Subclasses raise MalformedTagError for arguments of the wrong kind."""

    def raise_unexpected(self, reason: str) -> NoReturn:
        """A generic error message for directives appearing in unexpected places during parsing"""
        raise MalformedTagError(f"Unexpected directive '{self.family}: {self.argument}': {reason}", lineno=self.lineno)


class LineDirective(AmphiDirective):
    """A type of directive that is attached to the statement that follows it"""

    def to_tag(self) -> Tag:
        return Tag(self.family, self.argument, self.lineno)


class VariantDirective(LineDirective):
    """`# amphi: blocking` or `# amphi: asynchronous` scopes the following statement to one variant"""

    FAMILY = VARIANT_TAG

    def validate(self) -> None:
        if self.argument not in {v.value for v in Variant}:
            choices = " or ".join(f"'{v.value}'" for v in Variant)
            raise MalformedTagError(
                f"Unknown variant '{self.argument}' (expected {choices})",
                lineno=self.lineno,
            )


class SourceDirective(LineDirective):
    """`# amphi-path: "some/file.py"` names the file holding the following out-of-line module"""

    FAMILY = SOURCE_TAG

    def validate(self) -> None:
        try:
            value = ast.literal_eval(self.argument)
        except (ValueError, SyntaxError):
            value = None
        if not isinstance(value, str):
            raise MalformedTagError(
                f"Source path should be a string literal, like `# {SOURCE_TAG}: \"sub/module.py\"`, "
                f"got {self.argument}",
                lineno=self.lineno,
            )

    @property
    def path(self) -> str:
        value = ast.literal_eval(self.argument)
        assert isinstance(value, str)
        return value

    def to_tag(self) -> Tag:
        return Tag(self.family, self.path, self.lineno)


class _ModuleNameDirective(AmphiDirective):
    def validate(self) -> None:
        if not self.argument.isidentifier():
            raise MalformedTagError(f"Module name must be an identifier, got '{self.argument}'", lineno=self.lineno)

    @property
    def module_name(self) -> str:
        return self.argument


class ModuleDirective(_ModuleNameDirective):
    """`# amphi-mod: name` declares a module whose body lives in another file"""

    FAMILY = "amphi-mod"


class ModuleStartDirective(_ModuleNameDirective):
    """`# amphi-begin: name` opens an inline module. Statements up to the matching end directive are its body."""

    FAMILY = "amphi-begin"


class ModuleEndDirective(_ModuleNameDirective):
    FAMILY = "amphi-end"

    def raise_end_does_not_match_start(self, start_directive: Optional[ModuleStartDirective]) -> NoReturn:
        if start_directive is None:
            raise MalformedTagError(
                f"End directive ('{self.module_name}', line {self.lineno}) has no matching start directive",
                lineno=self.lineno,
            )
        raise MalformedTagError(
            f"End directive ('{self.module_name}', line {self.lineno}) "
            f"does not match start directive "
            f"('{start_directive.module_name}', line {start_directive.lineno})",
            lineno=self.lineno,
        )

    def matches(self, start_directive: ModuleStartDirective) -> bool:
        return self.module_name == start_directive.module_name
