"""
Generation options: which variants to produce and where to look for (and write) module sources.

Options are built either by the command line interface or directly by callers of `generate()`. In both cases they
are validated here, before any tree work begins.
"""
import enum
from dataclasses import dataclass
from dataclasses import field
from pathlib import Path
from typing import Iterator
from typing import Optional
from typing import Union

from python_amphi.errors import DirectiveError

__all__ = ["Variant", "Mode", "GenerationOptions", "DEFAULT_TEST_SCOPE"]

DEFAULT_TEST_SCOPE = "amphi"
"""Root module name assumed by the paired test adapter when none is given"""


class Variant(str, enum.Enum):
    """The two flavors of generated code. The value doubles as the generated module's name."""

    BLOCKING = "blocking"
    ASYNCHRONOUS = "asynchronous"

    @property
    def other(self) -> "Variant":
        return Variant.ASYNCHRONOUS if self is Variant.BLOCKING else Variant.BLOCKING

    def __str__(self) -> str:
        return self.value


class Mode(enum.Enum):
    BOTH = "both"
    BLOCKING_ONLY = "blocking_only"
    ASYNC_ONLY = "async_only"

    @property
    def variants(self) -> Iterator[Variant]:
        """Selected variants, in emission order (asynchronous first)"""
        if self is not Mode.BLOCKING_ONLY:
            yield Variant.ASYNCHRONOUS
        if self is not Mode.ASYNC_ONLY:
            yield Variant.BLOCKING

    @classmethod
    def from_flags(cls, blocking_only: bool = False, async_only: bool = False) -> "Mode":
        if blocking_only and async_only:
            raise DirectiveError("'blocking_only' and 'async_only' are mutually exclusive")
        if blocking_only:
            return cls.BLOCKING_ONLY
        if async_only:
            return cls.ASYNC_ONLY
        return cls.BOTH


@dataclass(frozen=True)
class GenerationOptions:
    mode: Mode = Mode.BOTH

    source_root: Optional[Path] = None
    """
    Base directory used to resolve out-of-line modules. Must be relative (to `cwd`) and must exist. When not given,
    the directory containing the root module is used.
    """

    output_dir: Optional[Path] = None
    """Where variant packages are written. Defaults to the directory containing the root module."""

    package: Optional[str] = None
    """
    Dotted name of the package that contains the root module (e.g. 'mylib'). When set, absolute imports of
    'mylib.<root>' are treated as self references too.
    """

    cwd: Path = field(default_factory=Path.cwd)

    def __post_init__(self) -> None:
        if self.source_root is not None:
            object.__setattr__(self, "source_root", self.validate_source_root(self.source_root, self.cwd))
        if self.package is not None and not all(part.isidentifier() for part in self.package.split(".")):
            raise DirectiveError(f"Package prefix must be a dotted name, got '{self.package}'")

    @staticmethod
    def validate_source_root(source_root: Union[str, Path], cwd: Path) -> Path:
        """Source root overrides must be relative paths naming an existing directory"""
        path = Path(source_root)
        if path.is_absolute():
            raise DirectiveError(f"Source root must be a relative path, got '{source_root}'")
        if not (cwd / path).is_dir():
            raise DirectiveError(f"Source root '{source_root}' does not exist")
        return cwd / path
