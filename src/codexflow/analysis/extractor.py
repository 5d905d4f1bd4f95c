"""Regex-based extraction of functions, classes and control structures.

This is pattern matching, not parsing: no AST is built and nothing is
scope-aware. Every public function returns a best-effort result and never
raises; failures are logged and the default result is returned instead.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass

logger = logging.getLogger(__name__)

PLACEHOLDER_FUNCTION = "main"

BRACKET_LANGUAGES = frozenset({"javascript", "typescript", "java", "csharp"})
COLON_LANGUAGES = frozenset({"python"})
SUPPORTED_LANGUAGES = BRACKET_LANGUAGES | COLON_LANGUAGES

_LANGUAGE_ALIASES = {
    "js": "javascript",
    "jsx": "javascript",
    "node": "javascript",
    "ts": "typescript",
    "tsx": "typescript",
    "py": "python",
    "python3": "python",
    "cs": "csharp",
    "c#": "csharp",
}

# Never reported as function or method names
_KEYWORDS = frozenset({
    "if", "else", "elif", "for", "foreach", "while", "do", "switch", "case",
    "try", "catch", "except", "finally", "return", "new", "throw", "function",
    "class", "typeof", "await", "yield", "with", "lambda", "using", "lock",
    "synchronized", "super", "constructor",
})

# Optional TypeScript return type between ")" and "{"
_TS_RETURN = r"(?::\s*[\w$<>\[\]|,. ]+)?"

_JS_FUNCTION_RE = re.compile(
    r"\bfunction\s+([A-Za-z_$][\w$]*)"
    r"|\b(?:const|let|var)\s+([A-Za-z_$][\w$]*)\s*=\s*(?:async\s+)?function"
    r"|\b(?:const|let|var)\s+([A-Za-z_$][\w$]*)\s*=\s*(?:async\s*)?\("
    r"|\bclass\s+([A-Za-z_$][\w$]*)"
    r"|([A-Za-z_$][\w$]*)\s*\([^)]*\)\s*" + _TS_RETURN + r"\s*\{"
)

_PY_FUNCTION_RE = re.compile(r"\bdef\s+([A-Za-z_]\w*)\s*\(|\bclass\s+([A-Za-z_]\w*)")

_JAVA_METHOD = (
    r"(?:^|[\s;{}])(?!return\b|new\b|else\b|throw\b)[\w<>\[\],.?]+\s+(\w+)\s*"
    r"\([^)]*\)\s*(?:throws\s+[\w.,\s]+?)?\s*\{"
)
_JAVA_FUNCTION_RE = re.compile(_JAVA_METHOD + r"|\bclass\s+([A-Za-z_]\w*)")
_JAVA_METHOD_RE = re.compile(_JAVA_METHOD)

_JS_METHOD_RE = re.compile(r"([A-Za-z_$][\w$]*)\s*\([^)]*\)\s*" + _TS_RETURN + r"\s*\{")

_JS_CLASS_RE = re.compile(r"\bclass\s+([A-Za-z_$][\w$]*)")
_CLASS_RE = re.compile(r"\bclass\s+([A-Za-z_]\w*)")

_BRACKET_IF_RE = re.compile(r"\bif\s*\(([^)]*)\)")
_BRACKET_LOOP_RE = re.compile(r"\b(for|while)\s*\(([^)]*)\)")
_COLON_IF_RE = re.compile(r"\b(?:el)?if\s+([^:\n]*)")
_COLON_LOOP_RE = re.compile(r"\b(for|while)\s+([^:\n]*)")

IF_LABEL_LIMIT = 20
LOOP_LABEL_LIMIT = 15


@dataclass(frozen=True)
class ControlStructure:
    type: str  # "if" or "loop"
    name: str
    position: int = 0

    def to_dict(self) -> dict:
        return {"type": self.type, "name": self.name}


def normalize_language(language: str | None) -> str:
    """Map a language tag or alias to its canonical name ("js" -> "javascript")."""
    if not language:
        return "javascript"
    tag = language.strip().lower()
    return _LANGUAGE_ALIASES.get(tag, tag)


def _truncate(text: str, limit: int) -> str:
    return text[:limit] + "..." if len(text) > limit else text


def _collect(names: list[str], name: str | None, exclude: set[str] | frozenset[str] = _KEYWORDS) -> None:
    if name and name not in exclude and name not in names:
        names.append(name)


def extract_functions(code: str, language: str, placeholder: bool = True) -> list[str]:
    """Return function (and callable-unit) names in first-occurrence order.

    When nothing is found in a supported language the list is ``["main"]``
    so downstream synthesis never sees an empty set; pass
    ``placeholder=False`` to get the raw result. Unsupported languages
    yield an empty list.
    """
    language = normalize_language(language)
    functions: list[str] = []
    try:
        if language in ("javascript", "typescript"):
            regex, groups = _JS_FUNCTION_RE, 5
        elif language == "python":
            regex, groups = _PY_FUNCTION_RE, 2
        elif language in ("java", "csharp"):
            regex, groups = _JAVA_FUNCTION_RE, 2
        else:
            return []

        for match in regex.finditer(code):
            name = next((match.group(i) for i in range(1, groups + 1) if match.group(i)), None)
            _collect(functions, name)
    except Exception:
        logger.exception("Function extraction failed (language=%s)", language)
        return [PLACEHOLDER_FUNCTION] if placeholder else []

    if not functions and placeholder:
        functions.append(PLACEHOLDER_FUNCTION)
    return functions


def extract_classes(code: str, language: str) -> list[str]:
    """Return class names declared with ``class <Name>``."""
    language = normalize_language(language)
    if language not in SUPPORTED_LANGUAGES:
        return []
    classes: list[str] = []
    try:
        regex = _JS_CLASS_RE if language in ("javascript", "typescript") else _CLASS_RE
        for match in regex.finditer(code):
            _collect(classes, match.group(1), exclude=frozenset())
    except Exception:
        logger.exception("Class extraction failed (language=%s)", language)
        return []
    return classes


def _brace_body(code: str, class_name: str) -> str | None:
    """Text between the braces of ``class <Name> ... {`` with nesting respected."""
    header = re.search(r"\bclass\s+" + re.escape(class_name) + r"\b[^{;]*\{", code)
    if header is None:
        return None
    start = header.end()
    depth = 1
    for i in range(start, len(code)):
        ch = code[i]
        if ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return code[start:i]
    return code[start:]


def _shallow(body: str) -> str:
    """Drop everything nested deeper than the top level of a class body.

    ``a() { x(); } b() {}`` becomes ``a() {} b() {}`` so method patterns
    only see member declarations.
    """
    out: list[str] = []
    depth = 0
    for ch in body:
        if ch == "{":
            if depth == 0:
                out.append(ch)
            depth += 1
        elif ch == "}":
            depth = max(depth - 1, 0)
            if depth == 0:
                out.append(ch)
        elif depth == 0:
            out.append(ch)
    return "".join(out)


def _indented_body(code: str, class_name: str) -> list[str]:
    """Lines of the indented block under ``class <Name>...:``."""
    header = re.search(
        r"^([ \t]*)class\s+" + re.escape(class_name) + r"\b[^\n]*:[ \t]*(?:#[^\n]*)?$",
        code,
        re.MULTILINE,
    )
    if header is None:
        return []
    class_indent = len(header.group(1).expandtabs())
    lines: list[str] = []
    for line in code[header.end():].split("\n")[1:]:
        if not line.strip():
            lines.append(line)
            continue
        if len(line) - len(line.lstrip()) <= class_indent:
            break
        lines.append(line)
    return lines


def extract_class_methods(code: str, class_name: str, language: str) -> list[str]:
    """Return method names declared directly in one class body.

    Constructors (``constructor``, ``__init__``, or a Java/C# method named
    after the class) are excluded. Returns an empty list if the class body
    cannot be found.
    """
    language = normalize_language(language)
    methods: list[str] = []
    try:
        if language == "python":
            lines = [ln.expandtabs() for ln in _indented_body(code, class_name)]
            indents = [len(ln) - len(ln.lstrip()) for ln in lines if ln.strip()]
            if not indents:
                return []
            member_indent = indents[0]
            for line in lines:
                m = re.match(r"( *)(?:async\s+)?def\s+([A-Za-z_]\w*)\s*\(", line)
                if m and len(m.group(1)) == member_indent:
                    _collect(methods, m.group(2), exclude=_KEYWORDS | {"__init__"})
            return methods

        if language not in BRACKET_LANGUAGES:
            return []
        body = _brace_body(code, class_name)
        if body is None:
            return []
        members = _shallow(body)
        if language in ("javascript", "typescript"):
            for match in _JS_METHOD_RE.finditer(members):
                _collect(methods, match.group(1), exclude=_KEYWORDS | {"constructor"})
        else:
            for match in _JAVA_METHOD_RE.finditer(members):
                _collect(methods, match.group(1), exclude=_KEYWORDS | {class_name})
    except Exception:
        logger.exception("Method extraction failed for class %s (language=%s)", class_name, language)
        return []
    return methods


def extract_control_structures(code: str, language: str) -> list[ControlStructure]:
    """Return if/loop occurrences in source order.

    Bracket-family languages match ``if (...)`` / ``for|while (...)``;
    Python matches ``if|elif ...:`` / ``for|while ...:``. Anything else yields
    an empty list.
    """
    language = normalize_language(language)
    if language in BRACKET_LANGUAGES:
        if_re, loop_re = _BRACKET_IF_RE, _BRACKET_LOOP_RE
    elif language in COLON_LANGUAGES:
        if_re, loop_re = _COLON_IF_RE, _COLON_LOOP_RE
    else:
        return []

    structures: list[ControlStructure] = []
    try:
        for match in if_re.finditer(code):
            condition = match.group(1).strip()
            if condition:
                structures.append(
                    ControlStructure("if", _truncate(condition, IF_LABEL_LIMIT), match.start())
                )
        for match in loop_re.finditer(code):
            header = match.group(2).strip()
            if header:
                structures.append(
                    ControlStructure(
                        "loop",
                        f"{match.group(1)}: {_truncate(header, LOOP_LABEL_LIMIT)}",
                        match.start(),
                    )
                )
    except Exception:
        logger.exception("Control structure extraction failed (language=%s)", language)
        return []

    structures.sort(key=lambda cs: cs.position)
    return structures


def has_token(code: str, *tokens: str) -> bool:
    """True if any of ``tokens`` occurs as a whole word in ``code``."""
    return any(re.search(r"\b" + re.escape(t) + r"\b", code) for t in tokens)
