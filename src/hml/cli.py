"""Command-line interface for the HML reader."""

from __future__ import annotations

import argparse
import logging
import sys
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from hml.errors import HmlError, HmlIOError, LexError, MarkupError, ParseError
from hml.escape import EscapeError

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class CliOptions:
    """Parsed CLI options."""

    input_file: Path | None  # None reads stdin
    output_file: Path | None
    xml_version: int = 100
    indent: bool = True
    xmlns: bool = True
    declarations: dict[str, str] = field(default_factory=dict)
    debug: bool = False
    verbose: bool = False


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser (separate function for testability)."""
    p = argparse.ArgumentParser(
        prog="hml",
        description="Convert HML markup to XML",
    )
    p.add_argument("input", nargs="?", default="-", help="Input .hml file (default: stdin)")
    p.add_argument("-o", "--output", help="Output file (default: stdout)")
    p.add_argument(
        "-x",
        "--xml_version",
        default=None,
        metavar="X.YZ",
        help="XML version written to the declaration (default: 1.0)",
    )
    p.add_argument(
        "--config",
        metavar="FILE",
        help="Config file (default: auto-discover hml.toml)",
    )
    p.add_argument(
        "--no-indent",
        dest="indent",
        action="store_false",
        default=None,
        help="Write XML without indentation",
    )
    p.add_argument(
        "--no-xmlns",
        dest="xmlns",
        action="store_false",
        default=None,
        help="Treat xmlns attributes as ordinary attributes",
    )
    p.add_argument(
        "-D",
        "--declare",
        action="append",
        default=[],
        metavar="PREFIX=URI",
        help="Declare a namespace prefix (repeatable)",
    )
    p.add_argument("--debug", action="store_true", help="Dump events to stderr")
    p.add_argument("-v", "--verbose", action="store_true", help="Log progress to stderr")
    return p


def parse_declare_arg(s: str) -> tuple[str, str]:
    """Parse a PREFIX=URI string into (prefix, uri)."""
    if "=" not in s:
        raise argparse.ArgumentTypeError(f"invalid declaration (expected PREFIX=URI): {s}")
    prefix, _, uri = s.partition("=")
    return prefix, uri


def parse_version(value: Any) -> int:
    """Convert a version such as ``1.0``, ``"1.1"`` or ``1`` to hundredths."""
    text = str(value).strip()
    major, _, minor = text.partition(".")
    if not major.isdigit() or (minor and not minor.isdigit()) or len(minor) > 2:
        raise argparse.ArgumentTypeError(f"invalid XML version (expected X.YZ): {value}")
    return int(major) * 100 + int(minor.ljust(2, "0") or "0")


def load_config(config_path: Path | None, input_dir: Path) -> dict[str, Any]:
    """Load a TOML config file, returning an empty dict on missing/absent file."""
    path = config_path if config_path is not None else input_dir / "hml.toml"

    if not path.is_file():
        if config_path is not None:
            raise HmlIOError(f"config file not found: {path}")
        return {}

    logger.debug("loading config %s", path)
    try:
        with open(path, "rb") as f:
            return tomllib.load(f)
    except tomllib.TOMLDecodeError as exc:
        raise argparse.ArgumentTypeError(f"invalid config file {path}: {exc}") from exc


def resolve_options(args: argparse.Namespace) -> CliOptions:
    """Merge config file and CLI args into CliOptions.

    Precedence: config file < CLI flags.
    """
    input_file = None if args.input == "-" else Path(args.input)
    input_dir = input_file.parent if input_file is not None else Path(".")
    if not input_dir.parts:
        input_dir = Path(".")

    config_path = Path(args.config) if args.config else None
    config = load_config(config_path, input_dir)

    # XML output: config < CLI
    xml_version = 100
    indent = True
    cfg_xml = config.get("xml")
    if isinstance(cfg_xml, dict):
        if "version" in cfg_xml:
            xml_version = parse_version(cfg_xml["version"])
        if isinstance(cfg_xml.get("indent"), bool):
            indent = cfg_xml["indent"]
    if args.xml_version is not None:
        xml_version = parse_version(args.xml_version)
    if args.indent is not None:
        indent = args.indent

    # Namespaces: config < CLI
    xmlns = True
    declarations: dict[str, str] = {}
    cfg_ns = config.get("namespaces")
    if isinstance(cfg_ns, dict):
        if isinstance(cfg_ns.get("xmlns"), bool):
            xmlns = cfg_ns["xmlns"]
        cfg_declare = cfg_ns.get("declare")
        if isinstance(cfg_declare, dict):
            for k, v in cfg_declare.items():
                declarations[str(k)] = str(v)
    if args.xmlns is not None:
        xmlns = args.xmlns
    for raw in args.declare:
        prefix, uri = parse_declare_arg(raw)
        declarations[prefix] = uri

    output_file = Path(args.output) if args.output else None

    options = CliOptions(
        input_file=input_file,
        output_file=output_file,
        xml_version=xml_version,
        indent=indent,
        xmlns=xmlns,
        declarations=declarations,
        debug=args.debug,
        verbose=args.verbose,
    )
    logger.info("resolved options: %s", options)
    return options


def convert_file(options: CliOptions) -> str:
    """Read, parse, and render an HML file (or stdin) to XML."""
    from hml.debug import dump_events
    from hml.parser import HmlReader
    from hml.source import CharSource
    from hml.xmlwriter import render

    if options.input_file is None:
        source = CharSource.from_stream()
    else:
        logger.debug("reading %s", options.input_file)
        source = CharSource.from_path(options.input_file)

    reader = HmlReader(
        source,
        version=options.xml_version,
        xmlns=options.xmlns,
        declarations=options.declarations,
    )
    events = list(reader)

    if options.debug:
        dump_events(events, reader.namespace_stack, file=sys.stderr)

    return render(events, reader.namespace_stack, indent=options.indent)


def main(argv: list[str] | None = None) -> int:
    """CLI entry point. Returns exit code (0/1/2). Does not call sys.exit()."""
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    try:
        options = resolve_options(args)
    except argparse.ArgumentTypeError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2
    except HmlIOError as exc:
        print(f"error: {exc.message}", file=sys.stderr)
        return 2

    filename = str(options.input_file) if options.input_file is not None else "<stdin>"
    try:
        xml = convert_file(options)
    except HmlIOError as exc:
        print(f"error: {exc.message}", file=sys.stderr)
        return 2
    except (LexError, ParseError, MarkupError) as exc:
        print(exc.format(filename), file=sys.stderr)
        return 1
    except EscapeError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1
    except HmlError as exc:
        print(str(exc), file=sys.stderr)
        return 1

    if options.output_file:
        try:
            options.output_file.write_text(xml, encoding="utf-8")
        except OSError as exc:
            print(f"error: cannot write {options.output_file}: {exc}", file=sys.stderr)
            return 2
    else:
        sys.stdout.write(xml)

    return 0

