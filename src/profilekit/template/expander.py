"""Directive expansion over a merged profile tree."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field

from ..exceptions import (
    CyclicIncludeError,
    ExpansionError,
    MaxDepthExceededError,
    TemplateDecodeError,
    UnknownWildcardNamespaceError,
    UnresolvedIncludeError,
)
from ..models import CompileConfig, CompiledDocument, MergedTree
from ..patterns import NAMESPACES, is_reserved, namespace_of
from .dedupe import dedupe, is_standards_path
from .lexer import Position
from .parser import (
    RUNTIME_PREFIX,
    Conditional,
    Include,
    Node,
    PhaseEmbed,
    Text,
    Variable,
    Wildcard,
    parse,
)

logger = logging.getLogger(__name__)

MAX_EXPANSION_DEPTH = 8

# Namespaces whose includes always become runtime pointers.
POINTER_NAMESPACES = frozenset({"protocols"})

PLAYWRIGHT_TOOLS = (
    "mcp__playwright__browser_close, mcp__playwright__browser_console_messages, "
    "mcp__playwright__browser_handle_dialog, mcp__playwright__browser_evaluate, "
    "mcp__playwright__browser_file_upload, mcp__playwright__browser_fill_form, "
    "mcp__playwright__browser_install, mcp__playwright__browser_press_key, "
    "mcp__playwright__browser_type, mcp__playwright__browser_navigate, "
    "mcp__playwright__browser_navigate_back, mcp__playwright__browser_network_requests, "
    "mcp__playwright__browser_take_screenshot, mcp__playwright__browser_snapshot, "
    "mcp__playwright__browser_click, mcp__playwright__browser_drag, "
    "mcp__playwright__browser_hover, mcp__playwright__browser_select_option, "
    "mcp__playwright__browser_tabs, mcp__playwright__browser_wait_for, "
    "mcp__ide__getDiagnostics, mcp__ide__executeCode, "
    "mcp__playwright__browser_resize"
)

_TOOLS_LINE_RE = re.compile(r"^tools:.*Playwright.*$", re.MULTILINE)


@dataclass
class _DocumentState:
    """Bookkeeping for one entrypoint's expansion."""

    entrypoint: str
    stack: list[str] = field(default_factory=list)
    emitted: set[str] = field(default_factory=set)
    includes: list[str] = field(default_factory=list)
    consumed_flags: set[str] = field(default_factory=set)
    lazy_references: list[str] = field(default_factory=list)

    def record_include(self, path: str) -> None:
        if path not in self.includes:
            self.includes.append(path)

    def record_lazy(self, path: str) -> None:
        if path not in self.lazy_references:
            self.lazy_references.append(path)


class Expander:
    """Expands ``{{...}}`` directives in documents of one merged tree.

    An Expander holds no state between documents, so one instance can be
    shared by concurrent workers.
    """

    def __init__(
        self,
        tree: MergedTree,
        config: CompileConfig,
        max_depth: int = MAX_EXPANSION_DEPTH,
    ) -> None:
        self.tree = tree
        self.config = config
        self.max_depth = max_depth

    def compile_document(self, entrypoint: str) -> CompiledDocument:
        """Expand one entrypoint into a compiled document.

        Raises:
            UnresolvedIncludeError: If the entrypoint or an include is missing
            ExpansionError: For any other directive failure in this document
        """
        state = _DocumentState(entrypoint)
        if entrypoint not in self.tree:
            msg = f"Entrypoint not found in merged tree: {entrypoint}"
            error = UnresolvedIncludeError(msg, path=entrypoint)
            error.document = entrypoint
            raise error

        try:
            content = self._expand_file(entrypoint, state, self.config, None, None)
        except ExpansionError as e:
            e.document = entrypoint
            raise

        return CompiledDocument(
            path=entrypoint,
            content=expand_tool_aliases(content),
            consumed_flags=sorted(state.consumed_flags),
            includes=list(state.includes),
            lazy_references=list(state.lazy_references),
        )

    def expand(self, entrypoint: str) -> str:
        """Expand one entrypoint and return only its text."""
        return self.compile_document(entrypoint).content

    def _expand_file(
        self,
        path: str,
        state: _DocumentState,
        config: CompileConfig,
        parent: str | None,
        position: Position | None,
    ) -> str:
        if path in state.stack:
            cycle = " -> ".join([*state.stack[state.stack.index(path):], path])
            msg = f"Circular include detected: {cycle}"
            raise self._error(
                CyclicIncludeError, msg, parent or path, position, {"cycle": cycle},
            )
        if len(state.stack) >= self.max_depth:
            chain = " -> ".join([*state.stack, path])
            msg = f"Maximum include depth ({self.max_depth}) exceeded: {chain}"
            raise self._error(
                MaxDepthExceededError, msg, parent or path, position, {"chain": chain},
            )

        template = self.tree.get(path)
        # Callers check membership before descending.
        assert template is not None
        try:
            source = template.text
        except UnicodeDecodeError as e:
            msg = f"Template is not valid UTF-8: {path} (byte {e.start})"
            raise self._error(
                TemplateDecodeError, msg, parent or path, position, {"file": path},
            ) from e
        nodes = parse(source, path, template.profile_id)

        state.stack.append(path)
        try:
            return self._render(nodes, state, config)
        finally:
            state.stack.pop()

    def _render(
        self,
        nodes: tuple[Node, ...] | list[Node],
        state: _DocumentState,
        config: CompileConfig,
    ) -> str:
        parts: list[str] = []
        for node in nodes:
            if isinstance(node, Text):
                parts.append(node.value)
            elif isinstance(node, Conditional):
                state.consumed_flags.add(node.flag)
                if node.flag not in config.flags:
                    logger.debug("Flag %s not set, treating as false", node.flag)
                if config.flag(node.flag) != node.negate:
                    parts.append(self._render(node.body, state, config))
            elif isinstance(node, Include):
                parts.append(self._include(node, state, config))
            elif isinstance(node, Wildcard):
                parts.append(self._wildcard(node, state, config))
            elif isinstance(node, PhaseEmbed):
                parts.append(self._phase(node, state, config))
            elif isinstance(node, Variable):
                value = config.variables.get(node.name)
                parts.append(node.raw if value is None else value)
        return "".join(parts)

    def _include(self, node: Include, state: _DocumentState, config: CompileConfig) -> str:
        path = node.path
        if path not in self.tree:
            msg = f"Included file not found: {path}"
            raise self._error(UnresolvedIncludeError, msg, state.stack[-1], node.position)

        if namespace_of(path) in POINTER_NAMESPACES or (
            node.lazy and config.lazy_load_workflows
        ):
            state.record_include(path)
            state.record_lazy(path)
            return f"{RUNTIME_PREFIX}{path}"

        if is_standards_path(path) and not dedupe(state.emitted, [path]):
            return ""

        state.record_include(path)
        body = self._expand_file(path, state, config, state.stack[-1], node.position)
        return body.rstrip("\n")

    def _wildcard(self, node: Wildcard, state: _DocumentState, config: CompileConfig) -> str:
        pattern = node.pattern
        namespace = namespace_of(pattern)
        if namespace not in NAMESPACES:
            msg = (
                f"Wildcard namespace '{namespace}' is not one of "
                f"{', '.join(NAMESPACES)}"
            )
            raise self._error(
                UnknownWildcardNamespaceError, msg, state.stack[-1], node.position,
            )

        # A trailing '*' takes in the whole subtree, so standards/* covers
        # standards/global/*.
        if pattern.endswith("*") and not pattern.endswith("**"):
            pattern += "*"

        matches = [
            p for p in self.tree.match(pattern)
            if p.endswith(".md") and not is_reserved(p)
        ]
        fresh = dedupe(state.emitted, matches)
        if not matches:
            logger.debug("Wildcard %s matched nothing in %s", node.pattern, state.entrypoint)

        if namespace in POINTER_NAMESPACES or (
            namespace == "workflows" and config.lazy_load_workflows
        ):
            for path in fresh:
                state.record_include(path)
                state.record_lazy(path)
            return "\n".join(f"{RUNTIME_PREFIX}{path}" for path in fresh)

        bodies = []
        for path in fresh:
            state.record_include(path)
            body = self._expand_file(path, state, config, state.stack[-1], node.position)
            bodies.append(body.rstrip("\n"))
        return "\n\n".join(bodies)

    def _phase(self, node: PhaseEmbed, state: _DocumentState, config: CompileConfig) -> str:
        directory, _, filename = node.path.rpartition("/")
        candidates = [f"{directory}/single-agent/{filename}", node.path]
        target = next((c for c in candidates if c in self.tree), None)
        if target is None:
            msg = f"Phase file not found: {node.path}"
            raise self._error(UnresolvedIncludeError, msg, state.stack[-1], node.position)

        state.record_include(target)
        embedded = config.with_flags(compiled_single_command=True)
        body = self._expand_file(target, state, embedded, state.stack[-1], node.position)
        body = body.rstrip("\n")
        return f"# {node.label}: {phase_title(filename)}\n\n{body}"

    def _error(
        self,
        error_class: type[ExpansionError],
        message: str,
        path: str,
        position: Position | None,
        details: dict[str, str] | None = None,
    ) -> ExpansionError:
        template = self.tree.get(path)
        return error_class(
            message,
            path=path,
            profile_id=template.profile_id if template else None,
            position=position.as_tuple() if position else None,
            details=details,
        )


def expand(entrypoint: str, tree: MergedTree, config: CompileConfig) -> str:
    """Expand the directives of one entrypoint document."""
    return Expander(tree, config).expand(entrypoint)


def phase_title(filename: str) -> str:
    """``1-product-concept.md`` becomes ``Product Concept``."""
    stem = filename.rsplit(".", 1)[0]
    stem = re.sub(r"^[0-9]*-", "", stem)
    return " ".join(word.capitalize() for word in stem.split("-") if word)


def expand_tool_aliases(content: str) -> str:
    """Replace ``Playwright`` in a front-matter ``tools:`` line with its tools."""
    return _TOOLS_LINE_RE.sub(
        lambda m: m.group(0).replace("Playwright", PLAYWRIGHT_TOOLS), content,
    )
