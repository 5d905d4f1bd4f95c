"""Shared test helpers — mock Gemini responses and canned completions."""

import threading
from unittest.mock import MagicMock


def _make_text_response(text):
    """Create a mock Gemini generate_content response with text content."""
    part = MagicMock()
    part.text = text

    content = MagicMock()
    content.role = "model"
    content.parts = [part]

    candidate = MagicMock()
    candidate.content = content

    response = MagicMock()
    response.candidates = [candidate]
    response.text = text
    return response


def _fenced(body: str, tag: str = "") -> str:
    """Wrap ``body`` the way models usually answer: prose plus a fenced block."""
    return f"Here is the diagram:\n\n```{tag}\n{body}\n```\n"


class _BlockingProvider:
    """Provider whose generate() blocks until released (or 5s pass)."""

    def __init__(self, text: str = "graph TD\n  A --> B"):
        self.text = text
        self.release = threading.Event()
        self.calls = 0

    def generate(self, prompt, system=None):
        self.calls += 1
        self.release.wait(5)
        return self.text


SAMPLE_JS = """function main() {
  if (user.isLoggedIn) {
    showDashboard();
  }
  for (let i = 0; i < items.length; i++) {
    render(items[i]);
  }
}

function helper() {
  return 42;
}
"""

SAMPLE_FLOW_GRAPH = {
    "nodes": [
        {"id": "start", "type": "start", "data": {"label": "Start"}},
        {"id": "check", "type": "decision", "data": {"label": "Logged in?"}},
        {"id": "end", "type": "end", "data": {"label": "End"}},
    ],
    "edges": [
        {"id": "e1", "source": "start", "target": "check"},
        {"id": "e2", "source": "check", "target": "end", "label": "Yes"},
    ],
}
