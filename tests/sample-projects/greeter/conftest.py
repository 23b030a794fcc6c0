import asyncio
import inspect
from pathlib import Path

import pytest

import python_amphi

HERE = Path(__file__).parent

python_amphi.generate_files("greeter/amphi", python_amphi.GenerationOptions(package="greeter", cwd=HERE))


@pytest.hookimpl(tryfirst=True)
def pytest_pyfunc_call(pyfuncitem):
    """Run the asynchronous variant of the paired tests in a fresh event loop"""
    if inspect.iscoroutinefunction(pyfuncitem.obj):
        asyncio.run(pyfuncitem.obj())
        return True
    return None
