"""Error taxonomy for diagram generation."""

from __future__ import annotations


class CodexflowError(Exception):
    """Base class for errors raised by codexflow."""


class InputError(CodexflowError):
    """Raised when a request is missing a required field or is malformed.

    Surfaced to HTTP clients as a 400 with the message in ``error``.
    """


class UpstreamError(CodexflowError):
    """Raised when the AI provider fails, times out, or returns unusable content.

    Always recovered by falling back to deterministic synthesis.
    """


class DiagramValidationError(UpstreamError):
    """Raised when AI output parses but does not have the expected diagram shape."""
