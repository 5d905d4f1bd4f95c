"""AI request orchestration: prompt, call, extract, validate, fall back.

Each ``generate_*`` method returns a ``GenerationResult``. Missing input
raises ``InputError``; every provider failure (timeout, exception, missing
key, malformed output) is recovered with the deterministic fallback and
reported as a ``warning``.
"""

from __future__ import annotations

import json
import logging
import re
import time
from dataclasses import dataclass
from typing import Any, Callable

from codexflow import config
from codexflow.agent.prompts import (
    DIAGRAM_HEADERS,
    build_dataflow_prompt,
    build_diagram_prompt,
    build_json_flowchart_prompt,
    build_sequence_prompt,
)
from codexflow.agent.provider import GeminiProvider, GenerationProvider, generate_with_timeout
from codexflow.analysis.extractor import normalize_language
from codexflow.diagrams.models import FlowGraph
from codexflow.diagrams.sequence import convert_structured_sequence, fallback_sequence_graph
from codexflow.diagrams.synthesizer import (
    normalize_diagram_type,
    synthesize,
    synthesize_flowchart_graph,
)
from codexflow.errors import DiagramValidationError, InputError, UpstreamError

logger = logging.getLogger(__name__)

CODE_TRUNCATION_MARKER = "\n// Code truncated due to length..."
TEXT_TRUNCATION_MARKER = "\n// Text truncated due to length..."

_FENCED_BLOCK = re.compile(r"```([\w+-]*)[ \t]*\n?(.*?)```", re.DOTALL)
_OPEN_FENCE = re.compile(r"```([\w+-]*)[ \t]*\n?(.*)", re.DOTALL)


@dataclass
class GenerationResult:
    payload: Any
    warning: str | None = None
    error: str | None = None

    @property
    def used_fallback(self) -> bool:
        return self.warning is not None or self.error is not None

    def to_response(self, key: str) -> dict[str, Any]:
        body: dict[str, Any] = {key: self.payload}
        if self.warning:
            body["warning"] = self.warning
        if self.error:
            body["error"] = self.error
        return body


def require_text(value: Any, message: str) -> str:
    """Return ``value`` if it is a non-blank string, else raise InputError."""
    if not isinstance(value, str) or not value.strip():
        raise InputError(message)
    return value


def truncate_input(text: str, marker: str, limit: int | None = None) -> str:
    """Cut ``text`` to ``limit`` characters and append ``marker`` if it was longer."""
    limit = limit or config.MAX_INPUT_LENGTH
    if len(text) <= limit:
        return text
    logger.info("Input truncated from %d to %d characters", len(text), limit)
    return text[:limit] + marker


def extract_code_block(text: str, preferred: str) -> str:
    """Strip Markdown fences from a completion.

    Prefers a block tagged ``preferred`` (e.g. "mermaid", "json"), then the
    first fenced block, then the raw text.
    """
    blocks = _FENCED_BLOCK.findall(text)
    for tag, body in blocks:
        if tag.lower() == preferred:
            return body.strip()
    if blocks:
        return blocks[0][1].strip()
    unterminated = _OPEN_FENCE.search(text)
    if unterminated:
        return unterminated.group(2).strip()
    return text.strip()


def parse_json_payload(text: str) -> Any:
    try:
        return json.loads(text)
    except (json.JSONDecodeError, RecursionError) as e:
        raise DiagramValidationError(f"Failed to parse diagram data from AI response: {e}") from e


class DiagramOrchestrator:
    """Generates diagrams with the AI provider, falling back to synthesis.

    Args:
        provider: Generation provider. Built lazily from config when omitted,
            so a missing API key surfaces as an UpstreamError (and a
            fallback) rather than at construction time.
        timeout: Seconds to wait for the provider before abandoning the call.
        max_input_length: Character cap applied to code and ideas.
    """

    def __init__(
        self,
        provider: GenerationProvider | None = None,
        timeout: float | None = None,
        max_input_length: int | None = None,
    ) -> None:
        self._provider = provider
        self._timeout = timeout or config.AI_REQUEST_TIMEOUT
        self._max_input_length = max_input_length or config.MAX_INPUT_LENGTH

    def _get_provider(self) -> GenerationProvider:
        if self._provider is None:
            self._provider = GeminiProvider(timeout=self._timeout)
        return self._provider

    def _complete(self, prompt: str) -> str:
        provider = self._get_provider()
        logger.info("Sending request to AI provider (%d char prompt)", len(prompt))
        t0 = time.perf_counter()
        text = generate_with_timeout(provider, prompt, self._timeout)
        logger.info("AI response received: %d chars, %.2fs", len(text), time.perf_counter() - t0)
        return text

    def _run(
        self,
        label: str,
        attempt: Callable[[], Any],
        fallback: Callable[[], Any],
        fallback_name: str,
        invalid_name: str | None = None,
    ) -> GenerationResult:
        """Run ``attempt``; on any UpstreamError return ``fallback()`` with a warning.

        ``invalid_name``, when given, is used instead of ``fallback_name`` for
        output that arrived but failed validation.
        """
        try:
            return GenerationResult(attempt())
        except UpstreamError as e:
            logger.warning("%s: AI generation failed (%s), using %s", label, e, fallback_name)
            if invalid_name and isinstance(e, DiagramValidationError):
                warning = f"{e}. Using {invalid_name}."
            else:
                warning = f"Error using Gemini API: {e}. Using {fallback_name}."
            return GenerationResult(fallback(), warning=warning)

    # ── Code to Mermaid ──

    def generate_diagram(
        self, code: Any, language: str | None = None, diagram_type: str | None = None,
    ) -> GenerationResult:
        """Mermaid flowchart, sequence or class diagram for ``code``."""
        code = require_text(code, "Code is required")
        language = normalize_language(language)
        diagram_type = normalize_diagram_type(diagram_type)
        code = truncate_input(code, CODE_TRUNCATION_MARKER, self._max_input_length)
        logger.info("generate_diagram: %d chars, language=%s, type=%s", len(code), language, diagram_type)

        def attempt() -> str:
            text = self._complete(build_diagram_prompt(code, language, diagram_type))
            diagram = extract_code_block(text, "mermaid")
            if not diagram or DIAGRAM_HEADERS[diagram_type] not in diagram:
                raise DiagramValidationError(f"Gemini didn't generate a valid {diagram_type} diagram")
            return diagram

        return self._run(
            "generate_diagram",
            attempt,
            lambda: synthesize(code, language, diagram_type),
            "enhanced fallback diagram generator",
            invalid_name="enhanced fallback generator",
        )

    # ── Code to JSON flowchart ──

    def generate_json_flowchart(self, code: Any, language: str | None = None) -> GenerationResult:
        """``{nodes, edges}`` flowchart for ``code``."""
        code = require_text(code, "Code is required")
        language = normalize_language(language)
        code = truncate_input(code, CODE_TRUNCATION_MARKER, self._max_input_length)
        logger.info("generate_json_flowchart: %d chars, language=%s", len(code), language)

        def attempt() -> dict:
            text = self._complete(build_json_flowchart_prompt(code, language))
            return FlowGraph.from_dict(parse_json_payload(extract_code_block(text, "json"))).to_dict()

        return self._run(
            "generate_json_flowchart",
            attempt,
            lambda: synthesize_flowchart_graph(code, language).to_dict(),
            "fallback flowchart generator",
        )

    # ── Ideas to sequence graph ──

    def generate_sequence(self, ideas: Any) -> GenerationResult:
        """Sequence graph from free text via the ``{participants, sequence}`` schema."""
        ideas = require_text(ideas, "Ideas text is required")
        ideas = truncate_input(ideas, TEXT_TRUNCATION_MARKER, self._max_input_length)
        logger.info("generate_sequence: %d chars", len(ideas))

        def attempt() -> dict:
            text = self._complete(build_sequence_prompt(ideas))
            return convert_structured_sequence(parse_json_payload(extract_code_block(text, "json"))).to_dict()

        return self._run(
            "generate_sequence",
            attempt,
            lambda: fallback_sequence_graph(ideas).to_dict(),
            "fallback sequence diagram generator",
        )

    def generate_dataflow(self, ideas: Any) -> GenerationResult:
        """Sequence graph from free text, with the AI emitting ``{nodes, edges}`` directly."""
        ideas = require_text(ideas, "Ideas text is required")
        ideas = truncate_input(ideas, TEXT_TRUNCATION_MARKER, self._max_input_length)
        logger.info("generate_dataflow: %d chars", len(ideas))

        def attempt() -> dict:
            text = self._complete(build_dataflow_prompt(ideas))
            return FlowGraph.from_dict(parse_json_payload(extract_code_block(text, "json"))).to_dict()

        return self._run(
            "generate_dataflow",
            attempt,
            lambda: fallback_sequence_graph(ideas).to_dict(),
            "fallback sequence diagram generator",
        )
