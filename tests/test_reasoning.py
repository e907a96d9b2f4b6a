"""
Tests for the reasoning filter.
"""

import pytest

from adapters.reasoning import filter_reasoning


class TestFilterReasoning:
    """Test removal of thinking markup."""

    def test_removes_think_span(self) -> None:
        """Test the basic <think> case."""
        assert filter_reasoning("<think>scratch</think>Final answer") == "Final answer"

    @pytest.mark.parametrize(
        "raw",
        [
            "<THINK>plan</THINK>Answer",
            "<Thinking>plan</thinking>Answer",
            "[THINKING]plan[/Thinking]Answer",
        ],
    )
    def test_case_insensitive(self, raw: str) -> None:
        """Test all three markers regardless of case."""
        assert filter_reasoning(raw) == "Answer"

    def test_multiline_spans_and_blank_lines(self) -> None:
        """Test spans crossing lines leave no blank lines behind."""
        raw = "<think>\nstep 1\n\nstep 2\n</think>\n\nFirst line\n\n\nSecond line\n"

        assert filter_reasoning(raw) == "First line\nSecond line"

    def test_empty_spans(self) -> None:
        """Test empty spans are removed."""
        assert filter_reasoning("<think></think>[thinking][/thinking]Hi") == "Hi"

    def test_multiple_spans_non_greedy(self) -> None:
        """Test text between two spans survives."""
        raw = "<think>a</think>keep<think>b</think> this"

        assert filter_reasoning(raw) == "keep this"

    def test_unterminated_tag_left_alone(self) -> None:
        """Test unmatched tags are not an error and stay in place."""
        assert filter_reasoning("<think>never closed") == "<think>never closed"
        assert filter_reasoning("answer</thinking>") == "answer</thinking>"

    def test_trims_whitespace(self) -> None:
        """Test surrounding whitespace is trimmed."""
        assert filter_reasoning("   plain text  \n") == "plain text"

    def test_empty_input(self) -> None:
        """Test empty input passes through."""
        assert filter_reasoning("") == ""

    @pytest.mark.parametrize(
        "raw",
        [
            "<think>x</think>Answer",
            "<thi<think>inner</think>nk>outer</think>Answer",
            "\n\n[thinking]a[/thinking]\n  text \n\n<thinking>b",
            "no markup at all",
        ],
    )
    def test_idempotent(self, raw: str) -> None:
        """Test filtering twice equals filtering once."""
        once = filter_reasoning(raw)

        assert filter_reasoning(once) == once

    def test_nested_reformed_span_removed(self) -> None:
        """Test a span re-formed by a removal is stripped too."""
        assert filter_reasoning("<thi<think>inner</think>nk>outer</think>Answer") == "Answer"
