"""Deterministic fallback diagrams built from regex extraction.

Used whenever the AI call fails or returns something unusable. Output is
Mermaid text for flowchart, sequence and class diagrams; the flowchart is
also available as a structured ``FlowGraph``. Nothing here raises: any
internal error produces the fixed basic diagram for the requested mode.
"""

from __future__ import annotations

import logging
import re

from codexflow.analysis.extractor import (
    PLACEHOLDER_FUNCTION,
    extract_class_methods,
    extract_classes,
    extract_control_structures,
    extract_functions,
    has_token,
)
from codexflow.diagrams.models import FlowGraph, Node

logger = logging.getLogger(__name__)

DIAGRAM_TYPES = ("flowchart", "sequence", "class")

# Characters after the main function's first occurrence that count as its body
MAIN_SCOPE_WINDOW = 500

BASIC_FLOWCHART = """graph TD
  Start[Start] --> Process[Process Code]
  Process --> End[End]"""

BASIC_SEQUENCE = """sequenceDiagram
  participant User
  participant System
  User->>System: Execute Code
  System->>User: Return Result"""

BASIC_CLASS = """classDiagram
  class Main {
    +execute()
  }
  class Helper {
    +process()
  }
  Main --> Helper"""

_PLAIN_LABEL = re.compile(r"^[\w ]+$")


def normalize_diagram_type(diagram_type: str | None) -> str:
    tag = (diagram_type or "flowchart").strip().lower()
    return tag if tag in DIAGRAM_TYPES else "flowchart"


def basic_diagram(diagram_type: str | None) -> str:
    """The fixed minimal diagram for a mode."""
    return {
        "sequence": BASIC_SEQUENCE,
        "class": BASIC_CLASS,
    }.get(normalize_diagram_type(diagram_type), BASIC_FLOWCHART)


def basic_flowchart_graph() -> FlowGraph:
    graph = FlowGraph()
    graph.add_node("Start", "start", "Start")
    graph.add_node("Process", "process", "Process Code")
    graph.add_node("End", "end", "End")
    graph.add_edge("Start", "Process")
    graph.add_edge("Process", "End")
    return graph


def find_main_function(functions: list[str]) -> str | None:
    """First name containing "main" or "init", or equal to "app" (case-insensitive)."""
    for name in functions:
        lowered = name.lower()
        if "main" in lowered or "init" in lowered or lowered == "app":
            return name
    return None


# ── Flowchart ──


def _flowchart_graph(code: str, language: str) -> FlowGraph:
    functions = extract_functions(code, language, placeholder=False)
    controls = extract_control_structures(code, language)
    if not functions and not controls:
        return basic_flowchart_graph()
    functions = functions or [PLACEHOLDER_FUNCTION]

    graph = FlowGraph()
    graph.add_node("Start", "start", "Start")
    current = "Start"

    main = find_main_function(functions)
    if main:
        graph.add_node("Main", "process", main)
        graph.add_edge(current, "Main")
        current = "Main"

        main_pos = code.find(main)
        in_scope = [
            cs for cs in controls
            if main_pos < cs.position < main_pos + MAIN_SCOPE_WINDOW
        ]
        for i, cs in enumerate(in_scope):
            if cs.type == "if":
                cond, then, other, after = f"Cond{i}", f"Then{i}", f"Else{i}", f"AfterIf{i}"
                graph.add_node(cond, "decision", cs.name)
                graph.add_edge(current, cond)
                graph.add_node(then, "process", "Then Branch")
                graph.add_edge(cond, then, "Yes")
                graph.add_node(other, "process", "Else Branch")
                graph.add_edge(cond, other, "No")
                graph.add_node(after, "process", "After If")
                graph.add_edge(then, after)
                graph.add_edge(other, after)
            else:
                loop, body, after = f"Loop{i}", f"Body{i}", f"AfterLoop{i}"
                graph.add_node(loop, "decision", cs.name)
                graph.add_edge(current, loop)
                graph.add_node(body, "process", "Loop Body")
                graph.add_edge(loop, body, "Each Iteration")
                graph.add_edge(body, loop)
                graph.add_node(after, "process", "After Loop")
                graph.add_edge(loop, after, "Done")
            current = after
        remaining = [f for f in functions if f != main]
    else:
        remaining = functions

    for i, func in enumerate(remaining):
        node_id = f"Func{i}"
        graph.add_node(node_id, "process", func)
        graph.add_edge(current, node_id)
        current = node_id

    graph.add_node("End", "end", "End")
    graph.add_edge(current, "End")
    return graph


def synthesize_flowchart_graph(code: str, language: str) -> FlowGraph:
    """Flowchart as ``{nodes, edges}``; falls back to Start -> Process -> End."""
    try:
        graph = _flowchart_graph(code, language)
        graph.validate()
        return graph
    except Exception:
        logger.exception("Flowchart graph synthesis failed, using basic flowchart")
        return basic_flowchart_graph()


def _node_shape(node: Node) -> str:
    label = node.label
    if node.type == "decision":
        return '{"' + label.replace('"', "#quot;") + '"}'
    if _PLAIN_LABEL.match(label):
        return f"[{label}]"
    return '["' + label.replace('"', "#quot;") + '"]'


def render_flowchart(graph: FlowGraph, direction: str = "TD") -> str:
    """Render a FlowGraph as Mermaid flowchart text.

    A node's shape and label are written on its first appearance only.
    """
    lines = [f"graph {direction}"]
    declared: set[str] = set()

    def ref(node_id: str) -> str:
        if node_id in declared:
            return node_id
        declared.add(node_id)
        node = graph.node(node_id)
        return node_id + _node_shape(node) if node else node_id

    for edge in graph.edges:
        source = ref(edge.source)
        arrow = f"-->|{edge.label}|" if edge.label else "-->"
        target = ref(edge.target)
        lines.append(f"  {source} {arrow} {target}")
    for node in graph.nodes:
        if node.id not in declared:
            lines.append(f"  {ref(node.id)}")
    return "\n".join(lines)


def _flowchart_diagram(code: str, language: str) -> str:
    return render_flowchart(_flowchart_graph(code, language))


# ── Sequence ──


def _sequence_diagram(code: str, language: str) -> str:
    functions = extract_functions(code, language, placeholder=False)
    classes = extract_classes(code, language)
    if not functions and not classes:
        return BASIC_SEQUENCE
    functions = functions or [PLACEHOLDER_FUNCTION]

    lines = ["sequenceDiagram", "  participant Main"]
    participants = {"Main"}
    for name in classes + functions:
        if name not in participants:
            participants.add(name)
            lines.append(f"  participant {name}")

    lines.append("  Main->>Main: Start Execution")

    main = find_main_function(functions)
    if main:
        has_branches = has_token(code, "if", "else")
        has_loops = has_token(code, "for", "while")
        for func in functions:
            if func == main or func == "Main":
                continue
            lines.append(f"  Main->>+{func}: Call Function")
            if has_branches:
                lines.append(f"  {func}->>+{func}: Check Condition")
                lines.append(f"  {func}-->>-{func}: Process Result")
            if has_loops:
                lines.append(f"  {func}->>+{func}: Loop Processing")
                lines.append(f"  {func}-->>-{func}: Complete Loop")
            lines.append(f"  {func}-->>-Main: Return Result")
        lines.append("  Main-->>Main: Complete Execution")
    else:
        previous = "Main"
        for func in functions:
            lines.append(f"  {previous}->>+{func}: Call")
            lines.append(f"  {func}-->>-{previous}: Return")
            previous = func

    return "\n".join(lines)


# ── Class ──


def _relationship(code: str, current: str, following: str) -> str:
    name = re.escape(following)
    if re.search(r"\bextends\s+" + name + r"\b", code) or re.search(r"\b" + name + r"\.prototype\b", code):
        return f"  {current} --|> {following}: Inherits"
    if re.search(r"\bnew\s+" + name + r"\b", code) or re.search(r"\b" + name + r"\.create\b", code):
        return f"  {current} --> {following}: Uses"
    return f"  {current} --> {following}"


def _class_diagram(code: str, language: str) -> str:
    classes = extract_classes(code, language)
    functions = extract_functions(code, language, placeholder=False)
    if not classes and not functions:
        return BASIC_CLASS

    lines = ["classDiagram"]
    if classes:
        for cls in classes:
            lines.append(f"  class {cls} {{")
            for method in extract_class_methods(code, cls, language) or ["execute"]:
                lines.append(f"    +{method}()")
            lines.append("  }")
        for current, following in zip(classes, classes[1:]):
            lines.append(_relationship(code, current, following))
        return "\n".join(lines)

    has_branches = has_token(code, "if", "else")
    has_loops = has_token(code, "for", "while")
    lines.extend(["  class Program {", "    +main()", "  }"])
    for func in functions:
        if func == "Program":
            continue
        lines.append(f"  class {func} {{")
        lines.append("    +execute()")
        if has_branches:
            lines.append("    +checkCondition()")
        if has_loops:
            lines.append("    +iterate()")
        lines.append("  }")
        lines.append(f"  Program --> {func}")
    return "\n".join(lines)


_BUILDERS = {
    "flowchart": _flowchart_diagram,
    "sequence": _sequence_diagram,
    "class": _class_diagram,
}


def synthesize(code: str, language: str, diagram_type: str = "flowchart") -> str:
    """Build a Mermaid diagram of ``diagram_type`` from pattern extraction.

    Args:
        code: Source code (already truncated by the caller).
        language: Language tag, e.g. "python" or "ts".
        diagram_type: "flowchart", "sequence" or "class"; anything else is
            treated as "flowchart".

    Returns:
        Non-empty Mermaid text. Never raises.
    """
    diagram_type = normalize_diagram_type(diagram_type)
    try:
        return _BUILDERS[diagram_type](code, language)
    except Exception:
        logger.exception("Fallback %s synthesis failed, using basic diagram", diagram_type)
        return basic_diagram(diagram_type)
