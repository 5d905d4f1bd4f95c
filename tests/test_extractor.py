"""Tests for regex-based function, class and control structure extraction."""

from __future__ import annotations

import pytest

from codexflow.analysis.extractor import (
    PLACEHOLDER_FUNCTION,
    SUPPORTED_LANGUAGES,
    ControlStructure,
    extract_class_methods,
    extract_classes,
    extract_control_structures,
    extract_functions,
    has_token,
    normalize_language,
)
from tests.helpers import SAMPLE_JS

JS_CLASS = """
class Greeter {
  constructor(name) {
    this.name = name;
  }

  greet() {
    if (this.name) {
      return `Hello ${this.name}`;
    }
    return "Hello";
  }

  farewell(other) {
    return "Bye " + other;
  }
}
"""

PY_CODE = """
class Calculator:
    def __init__(self):
        self.total = 0

    def add(self, x):
        if x > 0:
            self.total += x
        return self.total

    def reset(self):
        self.total = 0


def run():
    calc = Calculator()
    for i in range(3):
        calc.add(i)
"""

JAVA_CODE = """
public class OrderService {
    private final Repository repo;

    public OrderService(Repository repo) {
        this.repo = repo;
    }

    public Order placeOrder(String id) {
        if (id == null) {
            throw new IllegalArgumentException("id");
        }
        return repo.save(new Order(id));
    }

    private void audit(Order order) {
        for (Item item : order.items()) {
            log(item);
        }
    }
}
"""


class TestNormalizeLanguage:
    def test_aliases(self):
        assert normalize_language("js") == "javascript"
        assert normalize_language("TS") == "typescript"
        assert normalize_language("py") == "python"
        assert normalize_language("c#") == "csharp"

    def test_missing_defaults_to_javascript(self):
        assert normalize_language(None) == "javascript"
        assert normalize_language("") == "javascript"

    def test_unknown_passes_through(self):
        assert normalize_language("Rust") == "rust"


class TestExtractFunctions:
    def test_javascript_declarations(self):
        code = (
            "function load() {}\n"
            "const parse = function(x) { return x; };\n"
            "let render = async (el) => el;\n"
        )
        assert extract_functions(code, "javascript") == ["load", "parse", "render"]

    def test_control_keywords_are_not_functions(self):
        assert extract_functions(SAMPLE_JS, "javascript") == ["main", "helper"]

    def test_javascript_class_and_methods(self):
        # constructor is a keyword, class names count as callable units
        assert extract_functions(JS_CLASS, "javascript") == ["Greeter", "greet", "farewell"]

    def test_typescript_return_types(self):
        code = "function total(xs: number[]): number {\n  return 0;\n}\nformat(v: string): string {\n}\n"
        assert extract_functions(code, "ts") == ["total", "format"]

    def test_python_defs_and_classes(self):
        assert extract_functions(PY_CODE, "python") == ["Calculator", "__init__", "add", "reset", "run"]

    def test_java_methods(self):
        assert extract_functions(JAVA_CODE, "java") == ["OrderService", "placeOrder", "audit"]

    def test_first_occurrence_order_without_duplicates(self):
        code = "function a() {}\nfunction b() {}\nfunction a() {}\n"
        assert extract_functions(code, "javascript") == ["a", "b"]

    @pytest.mark.parametrize("language", sorted(SUPPORTED_LANGUAGES))
    def test_placeholder_when_nothing_found(self, language):
        assert extract_functions("", language) == [PLACEHOLDER_FUNCTION]

    def test_placeholder_can_be_disabled(self):
        assert extract_functions("just text", "javascript", placeholder=False) == []

    def test_unsupported_language_is_empty(self):
        assert extract_functions("fn main() {}", "rust") == []


class TestExtractClasses:
    def test_javascript(self):
        code = "class Animal {}\nclass Dog extends Animal {}\n"
        assert extract_classes(code, "javascript") == ["Animal", "Dog"]

    def test_python(self):
        assert extract_classes(PY_CODE, "python") == ["Calculator"]

    def test_no_classes(self):
        assert extract_classes("function a() {}", "javascript") == []

    def test_class_name_substring_not_matched(self):
        assert extract_classes("const className = 'x';", "javascript") == []

    def test_unsupported_language(self):
        assert extract_classes("class Foo {}", "haskell") == []


class TestExtractClassMethods:
    def test_javascript_excludes_constructor(self):
        assert extract_class_methods(JS_CLASS, "Greeter", "javascript") == ["greet", "farewell"]

    def test_javascript_ignores_calls_inside_method_bodies(self):
        code = "class A {\n  run() {\n    if (x) { helper(); }\n  }\n  stop() {}\n}\n"
        assert extract_class_methods(code, "A", "javascript") == ["run", "stop"]

    def test_python_excludes_init(self):
        assert extract_class_methods(PY_CODE, "Calculator", "python") == ["add", "reset"]

    def test_python_stops_at_dedent(self):
        methods = extract_class_methods(PY_CODE, "Calculator", "python")
        assert "run" not in methods

    def test_java_excludes_constructor(self):
        assert extract_class_methods(JAVA_CODE, "OrderService", "java") == ["placeOrder", "audit"]

    def test_missing_class(self):
        assert extract_class_methods(JS_CLASS, "Nope", "javascript") == []

    def test_empty_class(self):
        assert extract_class_methods("class Empty {}", "Empty", "javascript") == []


class TestExtractControlStructures:
    def test_bracket_if_and_loop_in_source_order(self):
        code = "function main(){ if(x){} for(;;){} }"
        structures = extract_control_structures(code, "javascript")
        assert [(cs.type, cs.name) for cs in structures] == [("if", "x"), ("loop", "for: ;;")]
        assert structures[0].position == 17
        assert structures[1].position == 25

    def test_loop_before_if_keeps_order(self):
        code = "while (busy) { wait(); }\nif (done) { stop(); }"
        structures = extract_control_structures(code, "javascript")
        assert [cs.type for cs in structures] == ["loop", "if"]

    def test_python_conditions(self):
        structures = extract_control_structures(PY_CODE, "python")
        assert [(cs.type, cs.name) for cs in structures] == [
            ("if", "x > 0"),
            ("loop", "for: i in range(3)"),
        ]

    def test_python_elif_conditions(self):
        code = "def main():\n    if a:\n        pass\n    elif b > 1:\n        pass\n"
        structures = extract_control_structures(code, "python")
        assert [(cs.type, cs.name) for cs in structures] == [("if", "a"), ("if", "b > 1")]

    def test_long_labels_truncated(self):
        code = "if (aVeryLongConditionName && another) {}\nwhile (someCounterVariable < limit) {}"
        structures = extract_control_structures(code, "javascript")
        assert structures[0].name == "aVeryLongConditionNa..."
        assert structures[1].name == "while: someCounterVari..."

    def test_to_dict_drops_position(self):
        assert ControlStructure("if", "x", 3).to_dict() == {"type": "if", "name": "x"}

    def test_unsupported_language(self):
        assert extract_control_structures("if x then y", "ocaml") == []


class TestHasToken:
    def test_whole_word(self):
        assert has_token("for (;;) {}", "for", "while")
        assert not has_token("const format = 1; const ifdef = 2;", "for", "if")
