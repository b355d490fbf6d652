"""Symbol dispatch tables and the two block-style walkers.

C-like languages share one walker driven by a per-language rule table and
brace counting. Python has its own walker because scope comes from
indentation, and it also picks up decorators and docstrings.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from codescope.index._internal.extraction.base import (
    ExtractedSymbol,
    Scope,
    Span,
    SymbolRule,
    definition_excerpt,
    extract_modifiers,
    find_brace_block_end,
    find_indent_block_end,
    indent_of,
    innermost_span,
    scope_allows,
)
from codescope.index.models import SymbolKind

_CONTROL_WORDS = frozenset(
    {
        "if", "else", "for", "foreach", "while", "do", "switch", "case", "catch", "try",
        "return", "throw", "function", "sizeof", "typeof", "await", "yield", "super",
        "this", "goto",
    }
)  # fmt: skip

# A keyword not followed by "(" opens a statement; "delete(key) {" is still a method
_STATEMENT_START = re.compile(
    r"^(?:return|throw|new|else|case|do|try|delete|await|yield|goto)\b(?!\s*\()"
)


@dataclass(frozen=True, slots=True)
class BraceRules:
    """Dispatch table for one C-like language."""

    rules: tuple[SymbolRule, ...]
    modifiers: frozenset[str]


def _rule(kind: SymbolKind, pattern: str, **kwargs: object) -> SymbolRule:
    return SymbolRule(kind=kind, pattern=re.compile(pattern), **kwargs)  # type: ignore[arg-type]


_JS_IDENT = r"[A-Za-z_$][\w$]*"

JAVASCRIPT_RULES = BraceRules(
    rules=(
        _rule(
            SymbolKind.CLASS,
            rf"^\s*(?:export\s+)?(?:default\s+)?(?:abstract\s+)?class\s+(?P<name>{_JS_IDENT})",
            container=True,
        ),
        _rule(
            SymbolKind.INTERFACE,
            rf"^\s*(?:export\s+)?(?:declare\s+)?interface\s+(?P<name>{_JS_IDENT})",
            container=True,
        ),
        _rule(
            SymbolKind.TYPE,
            rf"^\s*(?:export\s+)?(?:declare\s+)?type\s+(?P<name>{_JS_IDENT})\s*(?:<[^>]*>)?\s*=",
        ),
        _rule(
            SymbolKind.FUNCTION,
            rf"^\s*(?:export\s+)?(?:default\s+)?(?:async\s+)?function\s*\*?\s*(?P<name>{_JS_IDENT})\s*[<(]",
        ),
        _rule(
            SymbolKind.FUNCTION,
            rf"^\s*(?:export\s+)?(?:const|let|var)\s+(?P<name>{_JS_IDENT})\s*(?::[^=]+)?="
            rf"\s*(?:async\s+)?(?:\([^)]*\)|{_JS_IDENT})\s*(?::[^=]+)?=>",
        ),
        _rule(
            SymbolKind.VARIABLE,
            rf"^\s*(?:export\s+)?(?:const|let|var)\s+(?P<name>{_JS_IDENT})",
            scope=Scope.TOP_LEVEL,
        ),
        _rule(
            SymbolKind.METHOD,
            r"^\s*(?:(?:public|private|protected|static|async|readonly|override|get|set)\s+)*"
            rf"\*?(?P<name>{_JS_IDENT})\s*(?:<[^>]*>)?\s*\([^)]*\)\s*(?::\s*[^{{]+)?\{{",
            scope=Scope.IN_CONTAINER,
            bare=True,
        ),
        _rule(
            SymbolKind.PROPERTY,
            r"^\s*(?:(?:public|private|protected|static|readonly|declare)\s+)*"
            rf"(?P<name>{_JS_IDENT})\s*[?!]?\s*(?::|=(?!=))",
            scope=Scope.IN_CONTAINER,
            block=False,
            bare=True,
        ),
    ),
    modifiers=frozenset(
        {"export", "default", "async", "static", "const", "let", "var", "public",
         "private", "protected", "readonly", "abstract", "declare"}
    ),  # fmt: skip
)

_JAVA_MODS = r"(?:(?:public|private|protected|static|final|abstract|synchronized|native|default|sealed|strictfp)\s+)*"

JAVA_RULES = BraceRules(
    rules=(
        _rule(
            SymbolKind.CLASS,
            rf"^\s*{_JAVA_MODS}(?:class|enum|record)\s+(?P<name>\w+)",
            container=True,
        ),
        _rule(
            SymbolKind.INTERFACE,
            rf"^\s*{_JAVA_MODS}@?interface\s+(?P<name>\w+)",
            container=True,
        ),
        _rule(
            SymbolKind.METHOD,
            rf"^\s*{_JAVA_MODS}(?:<[^>]+>\s*)?[\w.\[\]<>?]+(?:\s*,\s*[\w.\[\]<>?]+)*\s+(?P<name>\w+)\s*\(",
            scope=Scope.IN_CONTAINER,
            bare=True,
        ),
        _rule(
            SymbolKind.PROPERTY,
            rf"^\s*{_JAVA_MODS}[\w.\[\]<>?]+\s+(?P<name>\w+)\s*(?:=(?!=)|;)",
            scope=Scope.IN_CONTAINER,
            block=False,
            bare=True,
        ),
    ),
    modifiers=frozenset(
        {"public", "private", "protected", "static", "final", "abstract", "synchronized"}
    ),
)

CPP_RULES = BraceRules(
    rules=(
        _rule(
            SymbolKind.CLASS,
            r"^\s*(?:template\s*<[^>]*>\s*)?class\s+(?:\w+\s+)?(?P<name>[A-Za-z_]\w*)\s*(?:final\s*)?(?:[:{]|$)",
            container=True,
        ),
        _rule(
            SymbolKind.CLASS,
            r"^\s*(?:typedef\s+)?struct\s+(?P<name>[A-Za-z_]\w*)\s*(?:[:{]|$)",
            container=True,
        ),
        _rule(
            SymbolKind.FUNCTION,
            r"^\s*(?:template\s*<[^>]*>\s*)?(?:(?:static|extern|inline|virtual|constexpr|explicit)\s+)*"
            r"(?:const\s+)?[A-Za-z_][\w:<>,]*(?:\s*[*&]+\s*|\s+)(?:\w+::)*(?P<name>~?[A-Za-z_]\w*)"
            r"\s*\([^;]*$",
            kind_in_container=SymbolKind.METHOD,
            bare=True,
        ),
    ),
    modifiers=frozenset({"static", "extern", "inline", "const", "virtual", "override"}),
)

GO_RULES = BraceRules(
    rules=(
        _rule(SymbolKind.METHOD, r"^func\s+\([^)]*\)\s*(?P<name>\w+)\s*[\[(]"),
        _rule(SymbolKind.FUNCTION, r"^func\s+(?P<name>\w+)\s*[\[(]"),
        _rule(SymbolKind.CLASS, r"^type\s+(?P<name>\w+)(?:\[[^\]]*\])?\s+struct\b"),
        _rule(SymbolKind.INTERFACE, r"^type\s+(?P<name>\w+)(?:\[[^\]]*\])?\s+interface\b"),
        _rule(SymbolKind.TYPE, r"^type\s+(?P<name>\w+)\s+", block=False),
        _rule(SymbolKind.VARIABLE, r"^(?:var|const)\s+(?P<name>\w+)", block=False),
    ),
    modifiers=frozenset(),
)

_RUST_VIS = r"(?:pub(?:\([^)]*\))?\s+)?"

RUST_RULES = BraceRules(
    rules=(
        _rule(
            SymbolKind.CLASS,
            r"^\s*(?:unsafe\s+)?impl\b",
            container=True,
            emit=False,
        ),
        _rule(
            SymbolKind.FUNCTION,
            rf'^\s*{_RUST_VIS}(?:(?:async|const|unsafe|extern(?:\s+"[^"]*")?)\s+)*fn\s+(?P<name>\w+)',
            kind_in_container=SymbolKind.METHOD,
        ),
        _rule(SymbolKind.CLASS, rf"^\s*{_RUST_VIS}struct\s+(?P<name>\w+)"),
        _rule(SymbolKind.TYPE, rf"^\s*{_RUST_VIS}enum\s+(?P<name>\w+)"),
        _rule(
            SymbolKind.INTERFACE,
            rf"^\s*{_RUST_VIS}(?:unsafe\s+)?trait\s+(?P<name>\w+)",
            container=True,
        ),
        _rule(SymbolKind.TYPE, rf"^\s*{_RUST_VIS}type\s+(?P<name>\w+)\s*(?:<[^>]*>)?\s*=", block=False),
        _rule(
            SymbolKind.VARIABLE,
            rf"^\s*{_RUST_VIS}(?:const|static)\s+(?:mut\s+)?(?P<name>\w+)\s*:",
            scope=Scope.TOP_LEVEL,
            block=False,
        ),
    ),
    modifiers=frozenset({"pub", "async", "const", "unsafe", "static", "mut", "extern"}),
)

BRACE_RULES: dict[str, BraceRules] = {
    "javascript": JAVASCRIPT_RULES,
    "typescript": JAVASCRIPT_RULES,
    "java": JAVA_RULES,
    "cpp": CPP_RULES,
    "c": CPP_RULES,
    "go": GO_RULES,
    "rust": RUST_RULES,
}


def _is_comment_line(stripped: str) -> bool:
    return stripped.startswith(("//", "/*", "*", "#"))


def extract_brace_symbols(text: str, table: BraceRules) -> list[ExtractedSymbol]:
    """Walk lines applying the first matching rule of a C-like table."""
    lines = text.splitlines()
    symbols: list[ExtractedSymbol] = []
    spans: list[Span] = []

    for idx, line in enumerate(lines):
        stripped = line.strip()
        if not stripped or _is_comment_line(stripped):
            continue
        statement = _STATEMENT_START.match(stripped) is not None
        line_no = idx + 1
        for rule in table.rules:
            match = rule.pattern.match(line)
            if match is None:
                continue
            name = match.groupdict().get("name")
            if rule.emit and not name:
                continue
            if rule.bare and (statement or name in _CONTROL_WORDS):
                continue
            if not scope_allows(rule.scope, spans, line_no):
                continue

            end_idx = find_brace_block_end(lines, idx) if rule.block else idx
            if rule.block and end_idx > idx:
                spans.append(Span(line_no, end_idx + 1, container=rule.container))
            elif rule.container:
                spans.append(Span(line_no, end_idx + 1, container=True))

            if rule.emit and name:
                kind = rule.kind
                inner = innermost_span(spans, line_no)
                if rule.kind_in_container and inner is not None and inner.container:
                    kind = rule.kind_in_container
                symbols.append(
                    ExtractedSymbol(
                        name=name,
                        kind=kind,
                        start_line=line_no,
                        end_line=end_idx + 1,
                        start_column=match.start("name") + 1,
                        end_column=len(lines[end_idx]) + 1,
                        definition=definition_excerpt(lines, idx, end_idx),
                        doc=_leading_doc_comment(lines, idx),
                        modifiers=extract_modifiers(line, table.modifiers),
                    )
                )
            break

    return symbols


def _leading_doc_comment(lines: list[str], idx: int) -> str | None:
    """Collect a /** ... */ or /// block directly above a declaration."""
    collected: list[str] = []
    i = idx - 1
    while i >= 0:
        stripped = lines[i].strip()
        if stripped.startswith("///"):
            collected.append(stripped[3:].strip())
        elif stripped.endswith("*/") or (collected and stripped.startswith(("*", "/**"))):
            body = stripped.removeprefix("/**").removeprefix("*").removesuffix("*/").strip()
            if body:
                collected.append(body)
            if stripped.startswith("/**"):
                break
        else:
            break
        i -= 1
    if not collected:
        return None
    return "\n".join(reversed(collected))


# =============================================================================
# Python
# =============================================================================

_PY_CLASS = re.compile(r"^(?P<indent>\s*)class\s+(?P<name>[A-Za-z_]\w*)")
_PY_DEF = re.compile(r"^(?P<indent>\s*)(?P<async>async\s+)?def\s+(?P<name>[A-Za-z_]\w*)")
_PY_TOP_VAR = re.compile(r"^(?P<name>[A-Za-z_]\w*)\s*(?::[^=]+)?=(?!=)")
_PY_ATTR = re.compile(
    r"^(?P<indent>\s+)(?P<name>[A-Za-z_]\w*)\s*(?::\s*[^=]+?\s*(?:=(?!=).*)?|=(?!=).*)$"
)
_PY_KEYWORDS = frozenset(
    {"return", "pass", "else", "elif", "try", "except", "finally", "with", "for",
     "while", "if", "raise", "yield", "lambda", "del", "global", "nonlocal", "assert"}
)  # fmt: skip
_PY_MODIFIERS = frozenset({"async"})


def extract_python_symbols(text: str) -> list[ExtractedSymbol]:
    """Indentation-scoped extraction of classes, functions, methods and variables."""
    lines = text.splitlines()
    symbols: list[ExtractedSymbol] = []
    spans: list[Span] = []

    for idx, line in enumerate(lines):
        stripped = line.strip()
        if not stripped or stripped.startswith("#"):
            continue
        line_no = idx + 1

        if match := _PY_CLASS.match(line):
            end_idx = find_indent_block_end(lines, idx)
            spans.append(Span(line_no, end_idx + 1, container=True))
            symbols.append(_python_symbol(lines, idx, end_idx, match, SymbolKind.CLASS))
            continue

        if match := _PY_DEF.match(line):
            end_idx = find_indent_block_end(lines, idx)
            inner = innermost_span(spans, line_no)
            kind = SymbolKind.METHOD if inner is not None and inner.container else SymbolKind.FUNCTION
            spans.append(Span(line_no, end_idx + 1, container=False))
            symbols.append(_python_symbol(lines, idx, end_idx, match, kind))
            continue

        if indent_of(line) == 0:
            if (match := _PY_TOP_VAR.match(line)) and match.group("name") not in _PY_KEYWORDS:
                symbols.append(_python_symbol(lines, idx, idx, match, SymbolKind.VARIABLE))
            continue

        inner = innermost_span(spans, line_no)
        if inner is not None and inner.container and (match := _PY_ATTR.match(line)):
            if match.group("name") not in _PY_KEYWORDS:
                symbols.append(_python_symbol(lines, idx, idx, match, SymbolKind.PROPERTY))

    return symbols


def _python_symbol(
    lines: list[str], idx: int, end_idx: int, match: re.Match[str], kind: SymbolKind
) -> ExtractedSymbol:
    modifiers = _python_decorators(lines, idx)
    modifiers.extend(extract_modifiers(lines[idx], _PY_MODIFIERS))
    doc = _python_docstring(lines, idx, end_idx) if kind not in (
        SymbolKind.VARIABLE,
        SymbolKind.PROPERTY,
    ) else None
    return ExtractedSymbol(
        name=match.group("name"),
        kind=kind,
        start_line=idx + 1,
        end_line=end_idx + 1,
        start_column=indent_of(lines[idx]) + 1,
        end_column=len(lines[end_idx]) + 1,
        definition=definition_excerpt(lines, idx, end_idx),
        doc=doc,
        modifiers=modifiers,
    )


def _python_decorators(lines: list[str], idx: int) -> list[str]:
    decorators: list[str] = []
    i = idx - 1
    while i >= 0 and lines[i].strip().startswith("@"):
        decorators.append(lines[i].strip().split("(", 1)[0])
        i -= 1
    decorators.reverse()
    return decorators


def _python_docstring(lines: list[str], idx: int, end_idx: int) -> str | None:
    """First statement of the body, if it is a string literal."""
    i = idx
    while i <= end_idx and not lines[i].split("#", 1)[0].rstrip().endswith(":"):
        i += 1
    i += 1
    while i <= end_idx and not lines[i].strip():
        i += 1
    if i > end_idx:
        return None
    first = lines[i].strip()
    for quote in ('"""', "'''"):
        if not first.startswith(quote):
            continue
        body = first[len(quote) :]
        if quote in body:
            return body.split(quote, 1)[0].strip()
        parts = [body]
        for j in range(i + 1, end_idx + 1):
            if quote in lines[j]:
                parts.append(lines[j].split(quote, 1)[0])
                return "\n".join(part.strip() for part in parts).strip()
            parts.append(lines[j])
        return None
    return None
