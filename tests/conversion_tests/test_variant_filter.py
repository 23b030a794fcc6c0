import ast
import re
from textwrap import dedent
from typing import Optional

import pytest

from python_amphi.conversion import ModuleResolver
from python_amphi.conversion import VariantConversion
from python_amphi.errors import MalformedTagError
from python_amphi.errors import ResolutionError
from python_amphi.options import Variant
from python_amphi.parse import ModuleDef
from python_amphi.parse import parse
from python_amphi.parse import tags_of
from python_amphi.parse import unparse


def convert(source: str, variant: Variant, package: Optional[str] = None) -> str:
    tree = parse(dedent(source))
    VariantConversion(variant, "amphi", package=package).convert(tree)
    return unparse(tree)


ANNOTATED = """\
    import time

    # amphi: asynchronous
    import asyncio

    # amphi: blocking
    def sleep(seconds):
        time.sleep(seconds)

    # amphi: asynchronous
    async def sleep(seconds):
        await asyncio.sleep(seconds)

    async def nap():
        x = 1
        # amphi: blocking
        x = 2
        if x:
            # amphi: asynchronous
            print('async only')
        return x
    """


def test_blocking_filter() -> None:
    assert convert(ANNOTATED, Variant.BLOCKING) == dedent(
        """\
        import time

        def sleep(seconds):
            time.sleep(seconds)

        async def nap():
            x = 1
            x = 2
            if x:
                pass
            return x"""
    )


def test_asynchronous_filter() -> None:
    assert convert(ANNOTATED, Variant.ASYNCHRONOUS) == dedent(
        """\
        import time
        import asyncio

        async def sleep(seconds):
            await asyncio.sleep(seconds)

        async def nap():
            x = 1
            if x:
                print('async only')
            return x"""
    )


def test_untagged_code_is_identical() -> None:
    source = """\
    class Client:

        async def get(self, url):
            async with self.session() as s:
                return await s.get(url)
    """
    assert convert(source, Variant.BLOCKING) == convert(source, Variant.ASYNCHRONOUS) == unparse(parse(dedent(source)))


def test_no_tags_remain() -> None:
    tree = parse(
        dedent(
            """\
            # amphi: blocking
            # amphi: blocking
            x = 1
            # amphi: blocking
            # amphi: asynchronous
            y = 2
            """
        )
    )
    VariantConversion(Variant.BLOCKING, "amphi").convert(tree)
    assert all(not tags_of(node) for node in ast.walk(tree))
    # tagged for both: the statement is removed from both variants
    assert unparse(tree) == "x = 1"


@pytest.mark.parametrize(
    ("source", "blocking", "asynchronous"),
    [
        ("from .amphi import Thing", "from .blocking import Thing", "from .asynchronous import Thing"),
        (
            "from ..amphi.sub import f as g",
            "from ..blocking.sub import f as g",
            "from ..asynchronous.sub import f as g",
        ),
        ("from amphi import Thing", "from blocking import Thing", "from asynchronous import Thing"),
        (
            "from . import amphi as a, other",
            "from . import blocking as a, other",
            "from . import asynchronous as a, other",
        ),
        ("import amphi.sub", "import blocking.sub", "import asynchronous.sub"),
        ("import amphi as a, os", "import blocking as a, os", "import asynchronous as a, os"),
        # not a self reference
        ("from otherlib.amphi import Thing", "from otherlib.amphi import Thing", "from otherlib.amphi import Thing"),
        ("from .sub.amphi import Thing", "from .sub.amphi import Thing", "from .sub.amphi import Thing"),
        ("import amphibian", "import amphibian", "import amphibian"),
    ],
)
def test_self_reference(source: str, blocking: str, asynchronous: str) -> None:
    assert convert(source, Variant.BLOCKING) == blocking
    assert convert(source, Variant.ASYNCHRONOUS) == asynchronous


@pytest.mark.parametrize(
    ("source", "expected"),
    [
        ("from mylib.amphi import Thing", "from mylib.blocking import Thing"),
        ("from mylib import amphi", "from mylib import blocking"),
        ("import mylib.amphi.sub", "import mylib.blocking.sub"),
        ("from .amphi import Thing", "from .blocking import Thing"),
        # outside of the package, `amphi` is someone else's module
        ("from amphi import Thing", "from amphi import Thing"),
        ("import amphi", "import amphi"),
    ],
)
def test_self_reference_in_package(source: str, expected: str) -> None:
    assert convert(source, Variant.BLOCKING, package="mylib") == expected


def test_inline_modules() -> None:
    source = """\
    # amphi-begin: helpers
    from .amphi import x
    # amphi: asynchronous
    y = 1
    # amphi-end: helpers
    # amphi: asynchronous
    # amphi-begin: only_async
    z = 1
    # amphi-end: only_async
    """
    assert convert(source, Variant.BLOCKING) == dedent(
        """\
        # amphi-begin: helpers
        from .blocking import x
        # amphi-end: helpers"""
    )


def test_out_of_line_needs_resolver() -> None:
    tree = parse("# amphi-mod: sub\n", "root.py")
    with pytest.raises(ResolutionError, match=re.escape("Module 'sub' is declared out-of-line")):
        VariantConversion(Variant.BLOCKING, "amphi").convert(tree)


def test_source_tag_on_inline_module() -> None:
    tree = parse("# amphi-path: 'x.py'\n# amphi-begin: sub\nx = 1\n# amphi-end: sub\n")
    with pytest.raises(MalformedTagError, match=re.escape("Module 'sub' has a body, it can not also be read")):
        VariantConversion(Variant.BLOCKING, "amphi").convert(tree)


def test_resolved_modules_are_filtered(tmp_path) -> None:
    (tmp_path / "amphi").mkdir()
    (tmp_path / "amphi" / "sub.py").write_text(
        dedent(
            """\
            from . import amphi
            # amphi: blocking
            x = 'blocking'
            # amphi: asynchronous
            x = 'asynchronous'
            # amphi-mod: deeper
            """
        )
    )
    (tmp_path / "amphi" / "sub").mkdir()
    (tmp_path / "amphi" / "sub" / "deeper.py").write_text("# amphi: asynchronous\nimport asyncio\n")

    root = ModuleDef(name="asynchronous", body=parse("# amphi-mod: sub\n").body)
    VariantConversion(Variant.ASYNCHRONOUS, "amphi", ModuleResolver(tmp_path)).convert(root)

    sub = root.body[0]
    assert isinstance(sub, ModuleDef) and sub.is_inline
    assert unparse(root) == dedent(
        """\
        # amphi-begin: asynchronous
        # amphi-begin: sub
        from . import asynchronous
        x = 'asynchronous'
        # amphi-begin: deeper
        import asyncio
        # amphi-end: deeper
        # amphi-end: sub
        # amphi-end: asynchronous"""
    )


def test_other_variant_module_is_not_resolved(tmp_path) -> None:
    tree = ModuleDef(name="blocking", body=parse("# amphi: asynchronous\n# amphi-mod: missing\nx = 1\n").body)
    VariantConversion(Variant.BLOCKING, "amphi", ModuleResolver(tmp_path)).convert(tree)
    assert unparse(tree) == "# amphi-begin: blocking\nx = 1\n# amphi-end: blocking"


def test_failure_in_nested_module(tmp_path) -> None:
    origin = tmp_path / "amphi.py"
    origin.write_text("# amphi-mod: sub\n")
    (tmp_path / "amphi").mkdir()
    (tmp_path / "amphi" / "sub.py").write_text("x = 1\n# amphi-mod: missing\n")

    root = ModuleDef(name="blocking", body=parse(origin.read_text()).body)
    conversion = VariantConversion(Variant.BLOCKING, "amphi", ModuleResolver(tmp_path))
    with pytest.raises(ResolutionError, match=re.escape("Fail to find module 'missing'")) as exc_info:
        conversion.convert(root, origin)
    # the error points into the fragment, the conversion is back at the root file
    assert (exc_info.value.filename, exc_info.value.lineno) == (str(tmp_path / "amphi" / "sub.py"), 2)
    assert conversion._filename == str(origin)
