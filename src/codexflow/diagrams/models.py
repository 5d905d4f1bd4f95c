"""Structured diagram data: nodes, edges and the graph that holds them."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from codexflow.errors import DiagramValidationError


@dataclass
class Node:
    id: str
    type: str
    label: str

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "type": self.type, "data": {"label": self.label}}


@dataclass
class Edge:
    id: str
    source: str
    target: str
    label: str | None = None

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {"id": self.id, "source": self.source, "target": self.target}
        if self.label:
            d["label"] = self.label
        return d


@dataclass
class FlowGraph:
    """A ``{nodes, edges}`` diagram.

    Every edge endpoint must reference an existing node id and every node
    must carry a non-empty label; ``validate()`` enforces both.
    """

    nodes: list[Node] = field(default_factory=list)
    edges: list[Edge] = field(default_factory=list)

    def add_node(self, id: str, type: str, label: str) -> Node:
        node = Node(id=id, type=type, label=label)
        self.nodes.append(node)
        return node

    def add_edge(self, source: str, target: str, label: str | None = None) -> Edge:
        edge = Edge(id=f"e{len(self.edges) + 1}", source=source, target=target, label=label)
        self.edges.append(edge)
        return edge

    def node(self, node_id: str) -> Node | None:
        return next((n for n in self.nodes if n.id == node_id), None)

    def validate(self) -> None:
        ids = set()
        for node in self.nodes:
            if not node.id or not node.type or not node.label:
                raise DiagramValidationError(f"Invalid node {node.id!r}: missing id, type or label")
            ids.add(node.id)
        for edge in self.edges:
            if not edge.id or not edge.source or not edge.target:
                raise DiagramValidationError(f"Invalid edge {edge.id!r}: missing id, source or target")
            if edge.source not in ids or edge.target not in ids:
                raise DiagramValidationError(
                    f"Edge {edge.id!r} references unknown node ({edge.source} -> {edge.target})"
                )

    def to_dict(self) -> dict[str, list[dict[str, Any]]]:
        return {
            "nodes": [n.to_dict() for n in self.nodes],
            "edges": [e.to_dict() for e in self.edges],
        }

    @classmethod
    def from_dict(cls, data: Any) -> FlowGraph:
        """Parse and validate an AI-produced ``{nodes, edges}`` object.

        Raises:
            DiagramValidationError: If the shape is wrong or a required
                property is missing.
        """
        if not isinstance(data, dict):
            raise DiagramValidationError("Invalid JSON structure: expected an object")
        nodes, edges = data.get("nodes"), data.get("edges")
        if not isinstance(nodes, list) or not isinstance(edges, list):
            raise DiagramValidationError("Invalid JSON structure: missing nodes or edges arrays")

        graph = cls()
        for raw in nodes:
            if not isinstance(raw, dict) or not isinstance(raw.get("data"), dict):
                raise DiagramValidationError("Invalid node structure: missing required properties")
            node_id, node_type, label = raw.get("id"), raw.get("type"), raw["data"].get("label")
            if not node_id or not node_type or not label:
                raise DiagramValidationError("Invalid node structure: missing required properties")
            graph.nodes.append(Node(id=str(node_id), type=str(node_type), label=str(label)))
        for raw in edges:
            if not isinstance(raw, dict):
                raise DiagramValidationError("Invalid edge structure: missing required properties")
            edge_id, source, target = raw.get("id"), raw.get("source"), raw.get("target")
            if not edge_id or not source or not target:
                raise DiagramValidationError("Invalid edge structure: missing required properties")
            label = raw.get("label")
            graph.edges.append(
                Edge(id=str(edge_id), source=str(source), target=str(target),
                     label=str(label) if label else None)
            )
        graph.validate()
        return graph
