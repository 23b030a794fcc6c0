import argparse
import logging
import sys
from pathlib import Path
from typing import List
from typing import Optional

from python_amphi.errors import AmphiError
from python_amphi.main import generate_files
from python_amphi.main import render
from python_amphi.options import GenerationOptions
from python_amphi.options import Mode

__all__ = ["main", "build_parser", "options_from_args"]

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="python-amphi",
        description="Generate the blocking and the asynchronous variant of an annotated Python module",
    )
    parser.add_argument("source", type=Path, help="Annotated module: a .py file or a package directory")
    restrict = parser.add_mutually_exclusive_group()
    restrict.add_argument("--blocking-only", action="store_true", help="Only generate the blocking variant")
    restrict.add_argument("--async-only", action="store_true", help="Only generate the asynchronous variant")
    parser.add_argument(
        "--path", type=Path, default=None, help="Relative directory used to resolve out-of-line modules"
    )
    parser.add_argument(
        "-o", "--output", type=Path, default=None, help="Output directory (default: next to the source)"
    )
    parser.add_argument(
        "--package", default=None, help="Dotted package containing the module, for absolute self imports"
    )
    parser.add_argument("--dry-run", action="store_true", help="Print the generated files instead of writing them")
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose logging")
    return parser


def options_from_args(args: argparse.Namespace) -> GenerationOptions:
    return GenerationOptions(
        mode=Mode.from_flags(blocking_only=args.blocking_only, async_only=args.async_only),
        source_root=args.path,
        output_dir=args.output,
        package=args.package,
    )


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO, format="%(levelname)s %(name)s: %(message)s"
    )

    try:
        options = options_from_args(args)
        if args.dry_run:
            for path, content in render(args.source, options).items():
                print(f"### {path}")
                print(content)
        else:
            written = generate_files(args.source, options)
            logger.info("generated %d file(s) from %s", len(written), args.source)
    except AmphiError as e:
        print(f"error: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
