"""Lint host: parse files, walk their trees, dispatch nodes to rule visitors.

Every enabled rule's ``create(context)`` is called once per file and
returns a mapping of tree-sitter node type to visitor. The tree is walked
once in pre-order (document order) and each named node is handed to the
visitors registered for its type. Rules report diagnostics through
``context.report``; the host renders and collects them.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path

from useindex.index.parser import detect_language, parse_file, parse_source

log = logging.getLogger(__name__)

_PLACEHOLDER_RE = re.compile(r"\{\{\s*([A-Za-z_][A-Za-z0-9_]*)\s*\}\}")


def interpolate(template: str, data: dict) -> str:
    """Fill ``{{ key }}`` placeholders from *data*; unknown keys stay as written."""

    def _repl(match: re.Match[str]) -> str:
        key = match.group(1)
        if key in data:
            return str(data[key])
        return match.group(0)

    return _PLACEHOLDER_RE.sub(_repl, template)


@dataclass(frozen=True)
class LintMessage:
    rule_id: str
    message_id: str
    severity: str
    message: str
    line: int
    column: int
    end_line: int
    end_column: int
    data: dict = field(default_factory=dict, compare=False)
    file: str = ""

    def to_dict(self) -> dict:
        return {
            "rule_id": self.rule_id,
            "message_id": self.message_id,
            "severity": self.severity,
            "message": self.message,
            "line": self.line,
            "column": self.column,
            "end_line": self.end_line,
            "end_column": self.end_column,
            "data": dict(self.data),
        }


@dataclass
class LintResult:
    file: str
    messages: list[LintMessage] = field(default_factory=list)
    parse_error: bool = False

    @property
    def error_count(self) -> int:
        return sum(1 for m in self.messages if m.severity == "error")

    @property
    def warning_count(self) -> int:
        return sum(1 for m in self.messages if m.severity == "warning")

    def to_dict(self) -> dict:
        return {
            "file": self.file,
            "parse_error": self.parse_error,
            "error_count": self.error_count,
            "warning_count": self.warning_count,
            "messages": [m.to_dict() for m in self.messages],
        }


class RuleContext:
    """Per-file view a rule gets in ``create(context)``."""

    def __init__(self, rule_id: str, rule, setting, file_path: str, source: bytes, sink: list):
        self.rule_id = rule_id
        self.options = list(setting.options)
        self.file_path = file_path
        self.source = source
        self._rule = rule
        self._severity = setting.severity
        self._sink = sink

    def report(self, diagnostic) -> None:
        """Record a diagnostic with ``node``, ``message_id`` and ``data`` attributes."""
        messages = self._rule.META.get("messages", {})
        template = messages.get(diagnostic.message_id, diagnostic.message_id)
        data = dict(diagnostic.data or {})
        node = diagnostic.node
        self._sink.append(
            LintMessage(
                rule_id=self.rule_id,
                message_id=diagnostic.message_id,
                severity=self._severity,
                message=interpolate(template, data),
                line=node.start_point[0] + 1,
                column=node.start_point[1] + 1,
                end_line=node.end_point[0] + 1,
                end_column=node.end_point[1] + 1,
                data=data,
                file=self.file_path,
            )
        )


def walk(root_node):
    """Yield named nodes in pre-order (document order)."""
    stack = [root_node]
    while stack:
        node = stack.pop()
        if node.is_named:
            yield node
        stack.extend(reversed(node.children))


def _crash_message(rule_id: str, file_path: str, node, exc: Exception) -> LintMessage:
    line = node.start_point[0] + 1 if node is not None else 1
    column = node.start_point[1] + 1 if node is not None else 1
    return LintMessage(
        rule_id=rule_id,
        message_id="ruleError",
        severity="error",
        message=f"rule {rule_id} failed: {exc}",
        line=line,
        column=column,
        end_line=line,
        end_column=column,
        file=file_path,
    )


def lint_tree(tree, source: bytes, config, api, file_path: str = "<input>") -> LintResult:
    """Run every enabled rule over an already-parsed *tree*."""
    result = LintResult(file=file_path, parse_error=tree.root_node.has_error)
    if result.parse_error:
        log.warning("%s: syntax errors, results may be incomplete", file_path)

    sink: list[LintMessage] = []
    visitors: dict[str, list] = {}
    for rule_id, setting in config.enabled_rules().items():
        rule = api.rules[rule_id]
        context = RuleContext(rule_id, rule, setting, file_path, source, sink)
        try:
            handlers = rule.create(context) or {}
        except Exception as exc:
            log.exception("rule %s failed to start on %s", rule_id, file_path)
            sink.append(_crash_message(rule_id, file_path, None, exc))
            continue
        for node_type, handler in handlers.items():
            visitors.setdefault(node_type, []).append((rule_id, handler))

    if visitors:
        for node in walk(tree.root_node):
            for rule_id, handler in visitors.get(node.type, ()):
                try:
                    handler(node)
                except Exception as exc:
                    log.exception("rule %s failed on %s", rule_id, file_path)
                    sink.append(_crash_message(rule_id, file_path, node, exc))

    result.messages = sorted(sink, key=lambda m: (m.line, m.column, m.rule_id))
    return result


def lint_source(source: bytes | str, language: str, config, api, file_path: str = "<input>") -> LintResult:
    """Parse and lint a source string."""
    if isinstance(source, str):
        source = source.encode("utf-8")
    tree = parse_source(source, language)
    return lint_tree(tree, source, config, api, file_path)


def _display_path(path: Path, root: Path | None) -> str:
    if root is not None:
        try:
            return path.resolve().relative_to(Path(root).resolve()).as_posix()
        except ValueError:
            pass
    return path.as_posix()


def lint_file(path: str | Path, config, api, root: str | Path | None = None) -> LintResult | None:
    """Lint one file. Returns None when the file is unsupported or unreadable."""
    path = Path(path)
    display = _display_path(path, Path(root) if root is not None else None)
    if detect_language(path) is None:
        log.info("skipping %s: not a JavaScript/TypeScript file", display)
        return None

    tree, source, _ = parse_file(path)
    if tree is None:
        return None
    return lint_tree(tree, source, config, api, display)


def lint_paths(paths, config, api, root: str | Path | None = None) -> list[LintResult]:
    """Lint each file in *paths* and return results in the same order."""
    results: list[LintResult] = []
    for path in paths:
        result = lint_file(path, config, api, root)
        if result is not None:
            results.append(result)
    log.info("linted %d file(s)", len(results))
    return results
