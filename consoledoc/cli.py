"""consoledoc CLI entry point."""
from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

from consoledoc.config import CodecOptions
from consoledoc.errors import DocumentError
from consoledoc.sniffer import ContainerFormat


def main(argv=None) -> None:
    parser = argparse.ArgumentParser(
        prog="consoledoc",
        description="consoledoc — console animation document codec",
    )
    sub = parser.add_subparsers(dest="command", metavar="COMMAND")
    info_parser = sub.add_parser("info", help="Print container, frame count and duration")
    info_parser.add_argument("path", metavar="document", help="Path to a document in any container")

    validate_parser = sub.add_parser(
        "validate",
        help="Check a PlainJson document against the packaged JSON Schema contract",
    )
    validate_parser.add_argument("path", metavar="document.json", help="Path to a PlainJson document")

    convert_parser = sub.add_parser("convert", help="Re-encode a document into another container")
    convert_parser.add_argument("source", metavar="input", help="Path to a document in any container")
    convert_parser.add_argument("output", metavar="output", help="Destination path")
    convert_parser.add_argument(
        "--format",
        choices=[f.value for f in ContainerFormat],
        default=None,
        help="Container to write (default: from the output suffix)",
    )
    convert_parser.add_argument(
        "--keyframe-interval", type=int, default=30,
        help="Frames between forced keyframes in compressed output",
    )
    args = parser.parse_args(argv)

    if args.command == "info":
        sys.exit(_info(Path(args.path)))
    elif args.command == "validate":
        sys.exit(_validate(Path(args.path)))
    elif args.command == "convert":
        fmt = ContainerFormat(args.format) if args.format else None
        sys.exit(_convert(Path(args.source), Path(args.output), fmt, args.keyframe_interval))
    else:
        parser.print_help()
        sys.exit(1)


def _info(path: Path) -> int:
    from consoledoc.loader import read_document

    try:
        result = read_document(path)
    except (FileNotFoundError, DocumentError) as exc:
        print(f"ERROR: {exc}")
        return 1
    doc = result.document
    print(f"format:   {result.format.value}")
    print(f"frames:   {doc.frame_count}")
    print(f"duration: {doc.total_duration_ms} ms")
    if result.partial:
        print("partial:  yes (stream has no complete footer)")
    if result.side_channel is not None:
        print(f"side channel: {len(result.side_channel)} characters")
    return 0


def _validate(path: Path) -> int:
    from consoledoc.contract_validate import contract_errors

    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError as exc:
        print(f"ERROR: {exc}")
        return 1
    except (ValueError, UnicodeDecodeError) as exc:
        print(f"ERROR: not a JSON document — {exc}")
        return 1
    if not isinstance(data, dict):
        print("ERROR: not a JSON object")
        return 1
    errors = contract_errors(data)
    for line in errors:
        print(f"ERROR: {line}")
    if errors:
        return 1
    print("OK: document is valid")
    return 0


def _convert(source: Path, output: Path, fmt, keyframe_interval: int) -> int:
    from consoledoc.loader import load_document, save_document

    options = CodecOptions(keyframe_interval=keyframe_interval)
    try:
        document = load_document(source, options)
        used = save_document(document, output, fmt, options)
    except (FileNotFoundError, DocumentError) as exc:
        print(f"ERROR: {exc}")
        return 1
    print(f"OK: wrote {used.value} to {output}")
    return 0


if __name__ == "__main__":
    main()
