#!/usr/bin/env python3
"""CLI: Generate a diagram for a source file (or stdin)."""

from __future__ import annotations

import argparse
import json
import os
import sys
from pathlib import Path

# Ensure the package is importable when running as a script
sys.path.insert(0, str(Path(__file__).resolve().parent.parent / "src"))

from codexflow import config
from codexflow.agent.orchestrator import CODE_TRUNCATION_MARKER, DiagramOrchestrator, truncate_input
from codexflow.diagrams.synthesizer import DIAGRAM_TYPES, synthesize, synthesize_flowchart_graph
from codexflow.errors import InputError
from codexflow.storage.history_store import HistoryStore

_EXTENSION_LANGUAGES = {
    ".js": "javascript", ".jsx": "javascript", ".mjs": "javascript", ".cjs": "javascript",
    ".ts": "typescript", ".tsx": "typescript",
    ".py": "python",
    ".java": "java",
    ".cs": "csharp",
}


def _detect_language(path: str) -> str:
    ext = os.path.splitext(path)[1].lower()
    return _EXTENSION_LANGUAGES.get(ext, "javascript")


def main() -> None:
    parser = argparse.ArgumentParser(description="Generate a diagram from source code")
    parser.add_argument("input", help="Source file to diagram, or - for stdin")
    parser.add_argument(
        "--language",
        type=str,
        default=None,
        help="Language tag (default: detected from the file extension)",
    )
    parser.add_argument(
        "--type",
        dest="diagram_type",
        choices=DIAGRAM_TYPES,
        default="flowchart",
        help="Mermaid diagram type (default: flowchart)",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Emit a {nodes, edges} flowchart instead of Mermaid text",
    )
    parser.add_argument(
        "--fallback-only",
        action="store_true",
        help="Skip the AI call and use the pattern-based generator",
    )
    parser.add_argument(
        "--save",
        action="store_true",
        help=f"Record the result in the history store ({config.HISTORY_DB_PATH})",
    )
    args = parser.parse_args()

    if args.input == "-":
        code = sys.stdin.read()
        language = args.language or "javascript"
    else:
        path = Path(args.input)
        if not path.is_file():
            print(f"Error: {path} is not a file.", file=sys.stderr)
            sys.exit(1)
        code = path.read_text(encoding="utf-8", errors="replace")
        language = args.language or _detect_language(args.input)

    diagram_type = "json-flowchart" if args.json else args.diagram_type

    if args.fallback_only:
        code = truncate_input(code, CODE_TRUNCATION_MARKER)
        if args.json:
            diagram = synthesize_flowchart_graph(code, language).to_dict()
        else:
            diagram = synthesize(code, language, args.diagram_type)
    else:
        orchestrator = DiagramOrchestrator()
        try:
            if args.json:
                result = orchestrator.generate_json_flowchart(code, language=language)
            else:
                result = orchestrator.generate_diagram(code, language=language, diagram_type=args.diagram_type)
        except InputError as e:
            print(f"Error: {e}", file=sys.stderr)
            sys.exit(1)
        if result.warning:
            print(f"Warning: {result.warning}", file=sys.stderr)
        diagram = result.payload

    print(json.dumps(diagram, indent=2) if args.json else diagram)

    if args.save:
        store = HistoryStore(config.HISTORY_DB_PATH, max_items=config.HISTORY_MAX_ITEMS)
        item = store.add(code, language, diagram_type, diagram)
        store.close()
        print(f"Saved to history as {item.id}", file=sys.stderr)


if __name__ == "__main__":
    main()
