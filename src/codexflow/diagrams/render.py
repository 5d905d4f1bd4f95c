"""Render settings for Mermaid output and the shareable embed snippet."""

from __future__ import annotations

import json
import re
from dataclasses import dataclass

THEMES = ("default", "forest", "dark", "neutral")
DIRECTIONS = ("TD", "TB", "BT", "LR", "RL")

_FLOWCHART_HEADER = re.compile(r"^(\s*)(graph|flowchart)\s+(TD|TB|BT|LR|RL)\b", re.MULTILINE)
_INIT_DIRECTIVE = re.compile(r"^\s*%%\{init:.*?\}%%\s*\n?", re.DOTALL)

MERMAID_CDN = "https://cdn.jsdelivr.net/npm/mermaid/dist/mermaid.min.js"


@dataclass(frozen=True)
class RenderOptions:
    theme: str = "default"
    direction: str = "TD"
    font_size: int = 14

    def __post_init__(self) -> None:
        if self.theme not in THEMES:
            raise ValueError(f"Unknown theme {self.theme!r}. Available: {', '.join(THEMES)}")
        if self.direction not in DIRECTIONS:
            raise ValueError(f"Unknown direction {self.direction!r}. Available: {', '.join(DIRECTIONS)}")
        if not 8 <= self.font_size <= 32:
            raise ValueError(f"Font size must be between 8 and 32, got {self.font_size}")

    def init_directive(self) -> str:
        config = {"theme": self.theme, "themeVariables": {"fontSize": f"{self.font_size}px"}}
        return "%%{init: " + json.dumps(config) + "}%%"


def apply_render_options(diagram: str, options: RenderOptions) -> str:
    """Prefix ``diagram`` with an init directive and set the flowchart direction.

    An existing init directive is replaced. Non-flowchart diagrams keep
    their layout; only the theme and font size apply to them.
    """
    body = _INIT_DIRECTIVE.sub("", diagram, count=1)
    body = _FLOWCHART_HEADER.sub(
        lambda m: f"{m.group(1)}{m.group(2)} {options.direction}", body, count=1
    )
    return f"{options.init_directive()}\n{body}"


def embed_html(diagram: str) -> str:
    return (
        f'<div class="mermaid">\n{diagram}\n</div>\n'
        f'<script src="{MERMAID_CDN}"></script>\n'
        "<script>mermaid.initialize({startOnLoad:true});</script>"
    )
