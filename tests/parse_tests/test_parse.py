import ast
import re
from textwrap import dedent
from typing import Optional
from typing import Type

import pytest

from python_amphi.errors import AmphiError
from python_amphi.errors import MalformedTagError
from python_amphi.errors import TargetError
from python_amphi.parse import ModuleDef
from python_amphi.parse import Tag
from python_amphi.parse import parse
from python_amphi.parse import tags_of
from python_amphi.parse import unparse
from python_amphi.parse.directives import AmphiDirective
from python_amphi.parse.directives import ModuleDirective
from python_amphi.parse.directives import ModuleEndDirective
from python_amphi.parse.directives import ModuleStartDirective
from python_amphi.parse.directives import SourceDirective
from python_amphi.parse.directives import VariantDirective


@pytest.mark.parametrize(
    ("comment", "expected"),
    [
        ("# just a comment", None),
        ("# amphibian: not ours", None),
        ("# amphi: blocking", VariantDirective(3, "amphi", "blocking")),
        ("#amphi:asynchronous", VariantDirective(3, "amphi", "asynchronous")),
        ('# amphi-path: "sub/mod.py"', SourceDirective(3, "amphi-path", '"sub/mod.py"')),
        ("# amphi-mod: sub", ModuleDirective(3, "amphi-mod", "sub")),
        ("# amphi-begin: inner ", ModuleStartDirective(3, "amphi-begin", "inner")),
        ("# amphi-end: inner", ModuleEndDirective(3, "amphi-end", "inner")),
    ],
)
def test_find_directive(comment: str, expected: Optional[AmphiDirective]) -> None:
    assert AmphiDirective.as_directive(3, comment) == expected


def test_source_directive_path() -> None:
    directive = AmphiDirective.as_directive(1, "# amphi-path: 'a/b.py'")
    assert isinstance(directive, SourceDirective)
    assert directive.path == "a/b.py"
    assert directive.to_tag() == Tag("amphi-path", "a/b.py", 1)


@pytest.mark.parametrize(
    ("bad_input", "exception", "expected_exception_string"),
    [
        (
            "x = 1\n# amphi: blocking\n",
            MalformedTagError,
            "One or more amphi directives appear right before the end of the block (first at line 2)",
        ),
        ("# amphi-begin: sub\nx = 1\n", MalformedTagError, "Module sub started on line 1 but never ended"),
        (
            "# amphi-begin: a\n# amphi-end: b\n",
            MalformedTagError,
            "End directive ('b', line 2) does not match start directive ('a', line 1)",
        ),
        ("# amphi-end: a\n", MalformedTagError, "End directive ('a', line 1) has no matching start directive"),
        (
            "# amphi-begin: a\n# amphi: blocking\n# amphi-end: a\n",
            MalformedTagError,
            "appear right before the end of module 'a'",
        ),
        ("# amphi: sometimes\nx = 1\n", MalformedTagError, "Unknown variant 'sometimes'"),
        ("# amphi-pth: 'x.py'\nx = 1\n", MalformedTagError, "'amphi-pth' is unrecognized"),
        ("# amphi:\nx = 1\n", MalformedTagError, "Directive 'amphi' requires an argument"),
        ("# amphi-path: x.py\n# amphi-mod: sub\n", MalformedTagError, "Source path should be a string literal"),
        ("# amphi-path: 42\n# amphi-mod: sub\n", MalformedTagError, "Source path should be a string literal"),
        ("# amphi-mod: 1x\n", MalformedTagError, "Module name must be an identifier, got '1x'"),
        ("x = 1  # amphi: blocking\n", MalformedTagError, "not allowed in inline comments"),
        (
            "# amphi-path: 'x.py'\ny = 1\n",
            TargetError,
            "'amphi-path' can only be attached to a module declaration, not to Assign",
        ),
        (
            "def f():\n    # amphi-mod: sub\n    pass\n",
            TargetError,
            "Module declaration 'sub' is only allowed at module",
        ),
    ],
)
def test_catch_directive_errors(bad_input: str, exception: Type[AmphiError], expected_exception_string: str) -> None:
    with pytest.raises(exception, match=re.escape(expected_exception_string)) as exc_info:
        parse(bad_input, "bad.py")
    assert exc_info.value.filename == "bad.py"
    assert str(exc_info.value).startswith("bad.py:")


def test_tags_attach_to_next_statement() -> None:
    tree = parse(
        dedent(
            """\
            # amphi: blocking
            import time

            # amphi: asynchronous
            # amphi: blocking
            async def f():
                # a regular comment
                # amphi: asynchronous
                x = await g()
                return x
            """
        )
    )
    import_node, func = tree.body
    assert isinstance(import_node, ast.Import)
    assert tags_of(import_node) == [Tag("amphi", "blocking", 1)]
    assert isinstance(func, ast.AsyncFunctionDef)
    assert [t.argument for t in tags_of(func)] == ["asynchronous", "blocking"]
    assign = [n for n in func.body if isinstance(n, ast.Assign)][0]
    assert tags_of(assign) == [Tag("amphi", "asynchronous", 8)]


def test_modules() -> None:
    tree = parse(
        dedent(
            """\
            x = 0
            # amphi: blocking
            # amphi-mod: sub
            # amphi-path: "other/place.py"
            # amphi-mod: other
            # amphi-begin: outer
            # amphi-begin: inner
            y = 1
            # amphi-end: inner
            # amphi-end: outer
            """
        )
    )
    _, sub, other, outer = tree.body
    assert isinstance(sub, ModuleDef)
    assert sub.name == "sub"
    assert sub.body == []
    assert not sub.is_inline
    assert tags_of(sub) == [Tag("amphi", "blocking", 2)]

    assert isinstance(other, ModuleDef)
    assert tags_of(other) == [Tag("amphi-path", "other/place.py", 4)]

    assert isinstance(outer, ModuleDef)
    assert outer.is_inline
    assert [m.name for m in outer.submodules] == ["inner"]
    inner = outer.submodules[0]
    assert isinstance(inner.body[0], ast.Assign)
    assert (inner.lineno, inner.end_lineno) == (7, 9)


def test_unparse_round_trip() -> None:
    source = dedent(
        """\
        # amphi: blocking
        import time
        x = 0

        # amphi: asynchronous
        async def f():
            # amphi: blocking
            x = 1
            return x
        # amphi-mod: sub
        # amphi-begin: inner
        y = 1
        # amphi-end: inner"""
    )
    assert unparse(parse(source)) == source
