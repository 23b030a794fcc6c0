import importlib.util
import sys
from pathlib import Path
from types import ModuleType
from typing import Callable
from typing import Generator
from typing import List

import pytest

ModuleImporter = Callable[[str, Path], ModuleType]


@pytest.fixture
def import_from_file() -> Generator[ModuleImporter, None, None]:
    """Import a source file under a given module name. Modules imported this way are unregistered after the test."""
    imported: List[str] = []

    def import_module_from_file(module_name: str, module_file: Path) -> ModuleType:
        spec = importlib.util.spec_from_file_location(module_name, str(module_file.absolute()))
        assert spec is not None and spec.loader is not None
        module = importlib.util.module_from_spec(spec)
        sys.modules[module_name] = module
        imported.append(module_name)
        spec.loader.exec_module(module)
        return module

    yield import_module_from_file
    for module_name in imported:
        sys.modules.pop(module_name, None)
