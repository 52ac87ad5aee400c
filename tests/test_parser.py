"""Tests for directive lexing and parsing."""

import pytest

from profilekit.exceptions import MalformedConditionalError
from profilekit.template import (
    Conditional,
    Include,
    PhaseEmbed,
    Position,
    Text,
    TokenKind,
    Variable,
    Wildcard,
    parse,
    tokenize,
)


class TestTokenize:
    """Test splitting text from directives."""

    def test_text_and_directives(self) -> None:
        """Directives are split out with their trimmed inner text."""
        tokens = tokenize("a {{ IF flag }}b")

        assert [t.kind for t in tokens] == [TokenKind.TEXT, TokenKind.DIRECTIVE, TokenKind.TEXT]
        assert tokens[1].value == "IF flag"
        assert tokens[1].raw == "{{ IF flag }}"

    def test_positions(self) -> None:
        """Tokens carry 1-based line and column."""
        tokens = tokenize("first\n  {{role}} and {{other}}")

        directives = [t for t in tokens if t.kind is TokenKind.DIRECTIVE]
        assert directives[0].position == Position(2, 3)
        assert directives[1].position == Position(2, 16)

    def test_unterminated_directive_is_text(self) -> None:
        """A lone {{ is literal."""
        tokens = tokenize("before {{ never closed")

        assert len(tokens) == 1
        assert tokens[0].kind is TokenKind.TEXT
        assert tokens[0].value == "before {{ never closed"

    def test_runtime_references_untouched(self) -> None:
        """Bare @agent-os paths are plain text."""
        tokens = tokenize("Read @agent-os/standards/global/coding-style.md first.")

        assert len(tokens) == 1
        assert tokens[0].kind is TokenKind.TEXT

    def test_standalone_detection(self) -> None:
        """A directive alone on its line is marked standalone."""
        tokens = tokenize("x\n  {{IF a}}  \ny {{ENDIF a}}\n")

        directives = [t for t in tokens if t.kind is TokenKind.DIRECTIVE]
        assert directives[0].standalone is True
        assert directives[1].standalone is False


class TestParse:
    """Test classification into directive nodes."""

    def test_include_appends_md(self) -> None:
        """Workflow references map to .md files and are lazily loadable."""
        nodes = parse("{{workflows/implementation/implement-tasks}}")

        assert nodes == [Include("workflows/implementation/implement-tasks.md", lazy=True)]

    def test_standards_include_is_not_lazy(self) -> None:
        """Only workflows are lazily loadable."""
        assert parse("{{standards/global/coding-style}}") == [
            Include("standards/global/coding-style.md", lazy=False),
        ]

    def test_wildcard(self) -> None:
        """Glob characters make a Wildcard."""
        assert parse("{{standards/backend/*}}") == [Wildcard("standards/backend/*")]

    def test_unknown_namespace_wildcard_still_parses(self) -> None:
        """Namespace checks happen at expansion time."""
        assert parse("{{snippets/*}}") == [Wildcard("snippets/*")]

    def test_phase(self) -> None:
        """PHASE tags keep their label and drop the runtime prefix."""
        nodes = parse("{{PHASE 1: @agent-os/commands/plan-product/1-product-concept.md}}")

        assert nodes == [
            PhaseEmbed("PHASE 1", "commands/plan-product/1-product-concept.md"),
        ]

    def test_variable(self) -> None:
        """Bare identifiers are variables that remember their raw spelling."""
        nodes = parse("Role: {{ role_name }}")

        assert nodes == [Text("Role: "), Variable("role_name", "{{ role_name }}")]

    def test_unclassifiable_directive_is_literal(self) -> None:
        """Anything else passes through unchanged."""
        assert parse("{{not a directive!}}") == [Text("{{not a directive!}}")]

    def test_nested_conditionals(self) -> None:
        """IF inside UNLESS builds a nested body."""
        nodes = parse(
            "{{UNLESS a}}x{{IF b}}y{{ENDIF b}}z{{ENDUNLESS a}}",
        )

        assert nodes == [
            Conditional("a", True, (
                Text("x"),
                Conditional("b", False, (Text("y"),)),
                Text("z"),
            )),
        ]

    def test_standalone_tags_consume_their_line(self) -> None:
        """A tag alone on its line leaves no blank line behind."""
        nodes = parse("a\n{{IF f}}\nb\n{{ENDIF f}}\nc\n")

        assert nodes == [
            Text("a\n"),
            Conditional("f", False, (Text("b\n"),)),
            Text("c\n"),
        ]


class TestMalformedConditionals:
    """Test parse-time conditional errors."""

    def test_mismatched_flag(self) -> None:
        """ENDIF must name the flag its IF opened."""
        with pytest.raises(MalformedConditionalError) as exc_info:
            parse("{{IF a}}\nx\n{{ENDIF b}}", path="agents/x.md", profile_id="default")

        error = exc_info.value
        assert error.position == (3, 1)
        assert error.path == "agents/x.md"
        assert error.profile_id == "default"

    def test_mismatched_kind(self) -> None:
        """ENDIF cannot close UNLESS."""
        with pytest.raises(MalformedConditionalError, match="closes"):
            parse("{{UNLESS a}}x{{ENDIF a}}")

    def test_stray_close(self) -> None:
        """A close without an open is an error."""
        with pytest.raises(MalformedConditionalError, match="without a matching"):
            parse("x{{ENDUNLESS a}}")

    def test_unclosed(self) -> None:
        """An open without a close is reported at the opening tag."""
        with pytest.raises(MalformedConditionalError) as exc_info:
            parse("line\n{{IF a}}x")

        assert exc_info.value.position == (2, 1)
