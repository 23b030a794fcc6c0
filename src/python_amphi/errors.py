from pathlib import Path
from typing import Optional
from typing import Union

__all__ = [
    "AmphiError",
    "DirectiveError",
    "TargetError",
    "ResolutionError",
    "ModuleCycleError",
    "MalformedTagError",
]


class AmphiError(Exception):
    """
    Base class for every error raised while generating the variants. Carries the source location (when one is known)
    so that the message can point at the offending line.
    """

    def __init__(
        self, message: str, filename: Optional[Union[str, Path]] = None, lineno: Optional[int] = None
    ) -> None:
        super().__init__(message)
        self.message = message
        self.filename = str(filename) if filename is not None else None
        self.lineno = lineno

    def __str__(self) -> str:
        if self.filename is None:
            return self.message
        if self.lineno is None:
            return f"{self.filename}: {self.message}"
        return f"{self.filename}:{self.lineno}: {self.message}"


class DirectiveError(AmphiError):
    """Invalid, excess or conflicting generation options"""


class TargetError(AmphiError):
    """The generator (or one of its annotations) was applied to something that can not be split into variants"""


class ResolutionError(AmphiError):
    """An out-of-line module whose source could not be located or read"""

    def __init__(
        self,
        message: str,
        module_name: str,
        filename: Optional[Union[str, Path]] = None,
        lineno: Optional[int] = None,
    ) -> None:
        super().__init__(message, filename, lineno)
        self.module_name = module_name


class ModuleCycleError(ResolutionError):
    """An out-of-line module which (directly or indirectly) resolves back to a file already being resolved"""


class MalformedTagError(AmphiError):
    """A directive comment that is misspelled, misplaced or has the wrong kind of argument"""
