"""Command-line preview renderer.

Loads a project snapshot, runs it through the preview pipeline, and writes the
resulting HTML document.

Usage::

    python -m uigen.cli snapshot.json
    python -m uigen.cli snapshot.json -o preview.html --entry /src/App.tsx
    python -m uigen.cli snapshot.json --frame
"""

from __future__ import annotations

import json
import sys
import time
from pathlib import Path
from typing import Optional

from uigen.config import PreviewConfig
from uigen.session import PreviewOutcome, PreviewSession, SessionError
from uigen.utils import (
    format_bytes,
    load_json,
    print_error,
    print_header,
    print_success,
    print_summary_table,
    print_warning,
)


def render_snapshot(
    snapshot: dict,
    config: PreviewConfig,
    entry: Optional[str] = None,
    verbose: bool = False,
) -> tuple[PreviewSession, PreviewOutcome]:
    """Build a session from *snapshot* and refresh it once."""
    session = PreviewSession(config, initial_data=snapshot, verbose=verbose)
    if entry:
        session.entry_point = entry
    return session, session.refresh()


def _summary(session: PreviewSession, outcome: PreviewOutcome, elapsed: float) -> dict[str, str]:
    data = {
        "Status": outcome.status,
        "Entry point": outcome.entry_point or "-",
        "Files": str(session.vfs.file_count),
        "Document size": format_bytes(len(outcome.html.encode("utf-8"))),
        "Elapsed": f"{elapsed:.2f}s",
    }
    if outcome.build is not None:
        data["Import map entries"] = str(len(outcome.build.table))
        data["Placeholders"] = str(len(outcome.build.placeholders))
        data["Transform errors"] = str(len(outcome.build.errors))
    if outcome.message:
        data["Message"] = outcome.message
    return data


def main(argv: list[str] | None = None) -> int:
    """CLI entry point for ``python -m uigen.cli``."""
    import argparse

    parser = argparse.ArgumentParser(
        description="UIGen preview -- render a project snapshot to HTML",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  python -m uigen.cli snapshot.json\n"
            "  python -m uigen.cli snapshot.json -o preview.html --entry /src/App.tsx\n"
        ),
    )
    parser.add_argument(
        "snapshot",
        help="JSON snapshot: serialize() output or a flat {path: content} object",
    )
    parser.add_argument(
        "--output", "-o",
        default="preview.html",
        help="Destination HTML file (default: preview.html)",
    )
    parser.add_argument(
        "--entry",
        default=None,
        help="Entry point path (default: auto-detected, /App.jsx first)",
    )
    parser.add_argument(
        "--frame",
        action="store_true",
        help="Wrap the document in a sandboxed <iframe srcdoc> element",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="JSON configuration file saved with PreviewConfig.save()",
    )
    parser.add_argument(
        "--quiet", "-q",
        action="store_true",
        help="Only print errors",
    )

    args = parser.parse_args(argv)

    snapshot_path = Path(args.snapshot)
    if not snapshot_path.exists():
        print_error(f"Error: Snapshot file not found: {snapshot_path}")
        return 1

    try:
        snapshot = load_json(snapshot_path)
    except json.JSONDecodeError as exc:
        print_error(f"Error: Invalid JSON in {snapshot_path}: {exc}")
        return 1

    config = PreviewConfig.load(Path(args.config)) if args.config else PreviewConfig.from_env()

    if not args.quiet:
        print_header("UIGen Preview")

    started = time.monotonic()
    try:
        session, outcome = render_snapshot(
            snapshot, config, entry=args.entry, verbose=not args.quiet
        )
    except SessionError as exc:
        print_error(f"Error: {exc}")
        return 1
    elapsed = time.monotonic() - started

    html = session.render_frame(outcome) if args.frame else outcome.html
    output_path = Path(args.output)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(html, encoding="utf-8", errors="replace")

    if not args.quiet:
        print_summary_table(_summary(session, outcome, elapsed), title="Preview")

    if outcome.status == "errors":
        for error in outcome.build.errors if outcome.build else ():
            print_error(error.error)
        return 1
    if outcome.status != "ready":
        print_warning(outcome.message or "Nothing to preview")
        return 0

    if not args.quiet:
        print_success(f"Preview written to {output_path}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
