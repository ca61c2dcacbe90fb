"""Tests for SourceSegmenter and its strategies."""

import pytest

from commitscore_core.segmenter import (
    FunctionBoundaryStrategy,
    LineWindowStrategy,
    SourceSegmenter,
    TypeBoundaryStrategy,
)

HEADER = "import os\nimport sys\n\n"


def py_function(name, body_lines=12):
    return f"def {name}():\n" + "    x = 1\n" * body_lines + "\n"


def py_class(name, methods=4, body_lines=10):
    text = f"class {name}:\n"
    for i in range(methods):
        text += f"    def method_{i}(self):\n" + "        y = 2\n" * body_lines + "\n"
    return text


def joined(segments):
    return "".join(s.content for s in segments)


# ---------------------------------------------------------------------------
# Fast path and empty input
# ---------------------------------------------------------------------------


class TestFastPath:
    def test_short_input_is_single_segment_equal_to_input(self):
        source = "def f():\n    return 1\n"
        segments = SourceSegmenter(max_segment_chars=2500).split(source, "main.py")
        assert len(segments) == 1
        assert segments[0].content == source
        assert segments[0].boundary_description == "entire file"
        assert segments[0].index == 0

    def test_input_exactly_at_limit_is_single_segment(self):
        source = "a" * 99 + "\n"
        segments = SourceSegmenter(max_segment_chars=100).split(source, "notes.txt")
        assert len(segments) == 1

    def test_empty_input_returns_no_segments(self):
        assert SourceSegmenter().split("", "main.py") == []

    def test_whitespace_input_is_a_single_segment(self):
        segments = SourceSegmenter().split("   \n\n\t\n", "main.py")
        assert [s.content for s in segments] == ["   \n\n\t\n"]

    def test_rejects_non_positive_limit(self):
        with pytest.raises(ValueError):
            SourceSegmenter(max_segment_chars=0)


# ---------------------------------------------------------------------------
# Boundary strategies
# ---------------------------------------------------------------------------


class TestBoundarySplit:
    def test_one_segment_per_top_level_declaration_plus_header(self):
        source = HEADER + py_function("alpha") + py_function("beta") + py_function("gamma")
        segments = SourceSegmenter(max_segment_chars=200).split(source, "service.py")

        assert joined(segments) == source
        assert [s.index for s in segments] == list(range(len(segments)))
        assert segments[0].boundary_description == "file header"
        assert "alpha" in segments[1].boundary_description
        assert "beta" in segments[2].boundary_description
        assert "gamma" in segments[3].boundary_description
        assert len(segments) == 4

    def test_oversized_type_is_split_at_members(self):
        source = HEADER + py_class("OrderService", methods=5)
        segments = SourceSegmenter(max_segment_chars=300).split(source, "orders.py")

        assert joined(segments) == source
        assert all(len(s.content) <= 300 for s in segments)
        assert any("OrderService >" in s.boundary_description for s in segments)

    def test_oversized_function_is_sliced_into_windows(self):
        source = py_function("huge", body_lines=60)
        segments = SourceSegmenter(max_segment_chars=200).split(source, "huge.py")

        assert joined(segments) == source
        assert len(segments) > 1
        assert all(len(s.content) <= 200 for s in segments)
        assert all("window" in s.boundary_description for s in segments)

    def test_decorators_stay_with_their_declaration(self):
        source = HEADER + "@cached\n" + py_function("alpha") + "@cached\n" + py_function("beta")
        segments = SourceSegmenter(max_segment_chars=200).split(source, "service.py")

        assert joined(segments) == source
        beta = next(s for s in segments if "beta" in s.boundary_description)
        assert beta.content.startswith("@cached\ndef beta")

    def test_csharp_types_are_found(self):
        body = "".join(f"        int field{i} = {i};\n" for i in range(8))
        source = (
            "using System;\n\nnamespace Shop\n{\n"
            "    public class Order\n    {\n" + body + "    }\n\n"
            "    internal sealed class Invoice\n    {\n" + body + "    }\n}\n"
        )
        segments = SourceSegmenter(max_segment_chars=300).split(source, "Order.cs")

        assert joined(segments) == source
        labels = [s.boundary_description for s in segments]
        assert any("Order" in label for label in labels)
        assert any("Invoice" in label for label in labels)

    def test_go_functions_are_found(self):
        func = "func {name}() {{\n" + "\tx := 1\n" * 15 + "}}\n\n"
        source = "package main\n\n" + func.format(name="Alpha") + func.format(name="Beta")
        segments = SourceSegmenter(max_segment_chars=150).split(source, "main.go")

        assert joined(segments) == source
        assert any("function Alpha" == s.boundary_description for s in segments)

    def test_line_numbers_follow_the_file(self):
        source = HEADER + py_function("alpha") + py_function("beta")
        segments = SourceSegmenter(max_segment_chars=150).split(source, "service.py")

        assert segments[0].start_line == 1
        for previous, current in zip(segments, segments[1:]):
            assert current.start_line == previous.end_line + 1
        assert segments[-1].end_line == len(source.splitlines())


# ---------------------------------------------------------------------------
# Line-window fallback
# ---------------------------------------------------------------------------


class TestLineWindows:
    def test_unknown_language_uses_even_line_windows(self):
        source = "".join(f"{i:02d}" + "x" * 47 + "\n" for i in range(10))  # 10 lines of 50 chars
        segments = SourceSegmenter(max_segment_chars=200).split(source, "notes.txt")

        # 500 chars / 200 → 3 windows → ceil(10 / 3) = 4 lines each.
        assert [len(s.content.splitlines()) for s in segments] == [4, 4, 2]
        assert segments[0].boundary_description == "lines 1-4"
        assert segments[1].start_line == 5
        assert segments[1].end_line == 8
        assert joined(segments) == source

    def test_known_language_without_markers_falls_back(self):
        source = "x = 1\n" * 100
        segments = SourceSegmenter(max_segment_chars=200).split(source, "script.py")

        assert joined(segments) == source
        assert segments[0].boundary_description.startswith("lines ")

    def test_single_minified_line_is_cut_into_windows(self):
        source = "a" * 1000
        segments = SourceSegmenter(max_segment_chars=300).split(source, "bundle.txt")

        assert [len(s.content) for s in segments] == [300, 300, 300, 100]
        assert joined(segments) == source


# ---------------------------------------------------------------------------
# Strategy selection
# ---------------------------------------------------------------------------


class TestStrategySelection:
    def test_by_extension(self):
        segmenter = SourceSegmenter()
        assert isinstance(segmenter.strategy_for("src/Order.cs"), TypeBoundaryStrategy)
        assert isinstance(segmenter.strategy_for("main.go"), FunctionBoundaryStrategy)
        assert isinstance(segmenter.strategy_for("README"), LineWindowStrategy)

    def test_by_bare_extension_or_language_name(self):
        segmenter = SourceSegmenter()
        assert isinstance(segmenter.strategy_for(".java"), TypeBoundaryStrategy)
        assert isinstance(segmenter.strategy_for("csharp"), TypeBoundaryStrategy)
        assert isinstance(segmenter.strategy_for("rust"), FunctionBoundaryStrategy)

    def test_register_strategy_is_per_instance(self):
        custom = SourceSegmenter()
        custom.register_strategy(".cs", LineWindowStrategy())

        assert isinstance(custom.strategy_for("a.cs"), LineWindowStrategy)
        assert isinstance(SourceSegmenter().strategy_for("a.cs"), TypeBoundaryStrategy)

    def test_max_chars_override_per_call(self):
        source = "line of text\n" * 20
        segmenter = SourceSegmenter(max_segment_chars=10_000)
        assert len(segmenter.split(source, "a.txt")) == 1
        assert len(segmenter.split(source, "a.txt", max_chars=100)) > 1
