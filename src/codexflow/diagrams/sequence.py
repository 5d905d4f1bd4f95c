"""Structured sequence diagrams: schema conversion and the ideas fallback.

The AI is asked for ``{participants, sequence}`` where each sequence item
is either a message ``{from, to, message}`` or an alternative block
``{alt, sequence}``. Renderers want ``{nodes, edges}``, so everything here
ends in a ``FlowGraph``.
"""

from __future__ import annotations

import logging
import re
from typing import Any

from codexflow.diagrams.models import FlowGraph
from codexflow.errors import DiagramValidationError

logger = logging.getLogger(__name__)

_PARTICIPANT_PATTERNS = [
    re.compile(r"\b(?:user|customer|client|person|patient|student)s?\b", re.IGNORECASE),
    re.compile(r"\b(?:system|app|application|platform|service|website|software)s?\b", re.IGNORECASE),
    re.compile(r"\b(?:database|db|storage|repository|store)s?\b", re.IGNORECASE),
    re.compile(r"\b(?:server|api|backend|cloud)s?\b", re.IGNORECASE),
    re.compile(r"\b(?:browser|frontend|client|interface)s?\b", re.IGNORECASE),
]

_CONDITIONAL = re.compile(r"\b(?:if|when|once|else|otherwise|alternatively)\b", re.IGNORECASE)
_SENTENCE_SPLIT = re.compile(r"[.!?]\s+")


def participant_id(label: str) -> str:
    return re.sub(r"\s+", "_", label.lower())


def participant_type(label: str) -> str:
    lowered = label.lower()
    if "system" in lowered or "app" in lowered or "service" in lowered:
        return "system"
    if "database" in lowered or "storage" in lowered:
        return "database"
    if "server" in lowered or "api" in lowered:
        return "component"
    return "actor"


def convert_structured_sequence(data: Any) -> FlowGraph:
    """Convert ``{participants, sequence}`` into ``{nodes, edges}``.

    Each distinct participant becomes one node. Each message between known
    participants becomes one edge labelled with the message. An ``alt`` block
    adds a self-edge labelled ``[condition]`` on the first system node (or
    the first node) and then its nested messages.

    Raises:
        DiagramValidationError: If the input does not have the expected shape.
    """
    if not isinstance(data, dict):
        raise DiagramValidationError("Invalid JSON structure: expected an object")
    participants, sequence = data.get("participants"), data.get("sequence")
    if not isinstance(participants, list) or not isinstance(sequence, list):
        raise DiagramValidationError("Invalid JSON structure: missing participants or sequence arrays")

    graph = FlowGraph()
    by_label: dict[str, str] = {}
    for participant in participants:
        if not isinstance(participant, str) or not participant.strip():
            raise DiagramValidationError(f"Invalid participant: {participant!r}")
        node_id = participant_id(participant)
        if graph.node(node_id) is None:
            graph.add_node(node_id, participant_type(participant), participant)
        by_label.setdefault(participant, node_id)

    # Explicit stack: alt blocks can nest arbitrarily deep
    stack = [iter(sequence)]
    while stack:
        for item in stack[-1]:
            if not isinstance(item, dict):
                continue
            if item.get("alt"):
                if graph.nodes:
                    anchor = next((n for n in graph.nodes if n.type == "system"), graph.nodes[0])
                    graph.add_edge(anchor.id, anchor.id, f"[{item['alt']}]")
                nested = item.get("sequence")
                if isinstance(nested, list):
                    stack.append(iter(nested))
                    break
            elif item.get("from") and item.get("to") and item.get("message"):
                if not _is_message(item):
                    raise DiagramValidationError(
                        "Invalid message structure: from, to and message must be strings"
                    )
                source, target = by_label.get(item["from"]), by_label.get(item["to"])
                if source and target:
                    graph.add_edge(source, target, item["message"])
        else:
            stack.pop()

    graph.validate()
    return graph


def _is_message(item: dict[str, Any]) -> bool:
    return all(isinstance(item.get(k), str) and item[k] for k in ("from", "to", "message"))


def _detect_participants(ideas: str) -> list[str]:
    participants: list[str] = []
    seen: set[str] = set()
    for pattern in _PARTICIPANT_PATTERNS:
        for match in pattern.findall(ideas):
            normalized = match.lower().strip()
            if normalized not in seen:
                seen.add(normalized)
                participants.append(match[:1].upper() + match[1:].lower())
    if not participants:
        participants = ["User", "System"]
    elif len(participants) == 1:
        participants.append("System")
    return participants


def _message_for(sentence: str, participants: list[str]) -> dict[str, str]:
    lowered = sentence.lower()
    mentioned = [p for p in participants if p.lower() in lowered][:2]
    if len(mentioned) == 2:
        source, target = mentioned
    elif len(mentioned) == 1:
        source = mentioned[0]
        target = next((p for p in participants if p != source), source)
    else:
        source, target = participants[0], participants[1]
    return {"from": source, "to": target, "message": sentence}


def fallback_structured_sequence(ideas: str) -> dict[str, Any]:
    """Heuristic ``{participants, sequence}`` from free text.

    Participants come from keyword families (user-ish, system-ish,
    database-ish, server-ish, client-ish words). Each sentence becomes a
    message between the participants it mentions; conditional sentences
    ("if", "when", "otherwise", ...) become ``alt`` blocks.
    """
    participants = _detect_participants(ideas)
    sequence: list[dict[str, Any]] = []
    for raw in _SENTENCE_SPLIT.split(ideas):
        sentence = raw.strip()
        if not sentence:
            continue
        if _CONDITIONAL.search(sentence):
            sequence.append({
                "alt": sentence,
                "sequence": [{
                    "from": participants[0],
                    "to": participants[1],
                    "message": "Action based on condition",
                }],
            })
        else:
            sequence.append(_message_for(sentence, participants))

    if not sequence:
        sequence = [
            {"from": participants[0], "to": participants[1], "message": "Request"},
            {"from": participants[1], "to": participants[0], "message": "Response"},
        ]
    return {"participants": participants, "sequence": sequence}


def basic_sequence_graph() -> FlowGraph:
    graph = FlowGraph()
    graph.add_node("user", "actor", "User")
    graph.add_node("system", "system", "System")
    graph.add_node("database", "database", "Database")
    graph.add_edge("user", "system", "Request")
    graph.add_edge("system", "database", "Query")
    graph.add_edge("database", "system", "Response")
    graph.add_edge("system", "user", "Result")
    return graph


def fallback_sequence_graph(ideas: str) -> FlowGraph:
    """Sequence graph derived from ``ideas`` without the AI. Never raises."""
    try:
        return convert_structured_sequence(fallback_structured_sequence(ideas))
    except Exception:
        logger.exception("Fallback sequence synthesis failed, using basic sequence")
        return basic_sequence_graph()
