"""Dependency (import/require/include) parsers per language family.

Each parser returns dependencies in source order. The external flag here is
syntactic: a path is local when it is written as a relative or
project-anchored reference. The indexing pipeline may still flip a Python
absolute import to local when it resolves to a file in the repository.
"""

from __future__ import annotations

import re
from collections.abc import Callable

from codescope.index._internal.extraction.base import ExtractedDependency
from codescope.index.models import ImportType

WILDCARD = "*"

# =============================================================================
# JavaScript / TypeScript
# =============================================================================

_JS_IMPORT_FROM = re.compile(
    r"^[ \t]*import\s+(?:type\s+)?(?P<clause>[^'\";]+?)\s+from\s+['\"](?P<path>[^'\"]+)['\"]",
    re.MULTILINE,
)
_JS_IMPORT_BARE = re.compile(r"^[ \t]*import\s+['\"](?P<path>[^'\"]+)['\"]", re.MULTILINE)
_JS_EXPORT_FROM = re.compile(
    r"^[ \t]*export\s+(?:type\s+)?(?P<clause>\*(?:\s+as\s+[\w$]+)?|\{[^}]*\})\s+from\s+['\"](?P<path>[^'\"]+)['\"]",
    re.MULTILINE,
)
_JS_REQUIRE_BOUND = re.compile(
    r"(?:const|let|var)\s+(?P<binding>\{[^}]*\}|[A-Za-z_$][\w$]*)\s*=\s*require\(\s*['\"](?P<path>[^'\"]+)['\"]\s*\)"
)
_JS_REQUIRE = re.compile(r"\brequire\(\s*['\"](?P<path>[^'\"]+)['\"]\s*\)")
_JS_DYNAMIC_IMPORT = re.compile(r"\bimport\(\s*['\"](?P<path>[^'\"]+)['\"]\s*\)")


def _js_is_external(path: str) -> bool:
    return not path.startswith((".", "/"))


def _split_names(body: str) -> list[str]:
    """Names from 'a, b as c, type d' keeping the imported (not local) name."""
    names: list[str] = []
    for part in body.split(","):
        part = part.strip()
        if not part:
            continue
        part = re.sub(r"^type\s+", "", part)
        name = re.split(r"\s+as\s+|\s*:\s*", part)[0].strip()
        if name:
            names.append(name)
    return names


def _js_clause_symbols(clause: str) -> list[str]:
    clause = clause.strip()
    symbols: list[str] = []
    brace = re.search(r"\{([^}]*)\}", clause)
    head = clause[: brace.start()] if brace else clause
    for part in head.split(","):
        part = part.strip()
        if not part:
            continue
        if part.startswith("*"):
            symbols.append(WILDCARD)
        else:
            symbols.append(part)
    if brace:
        symbols.extend(_split_names(brace.group(1)))
    return symbols


def _line_of(text: str, offset: int) -> int:
    return text.count("\n", 0, offset) + 1


def parse_javascript_imports(text: str, path: str) -> list[ExtractedDependency]:  # noqa: ARG001
    found: list[tuple[int, ExtractedDependency]] = []
    seen_offsets: set[int] = set()

    for m in _JS_IMPORT_FROM.finditer(text):
        found.append((m.start(), _dep(m.group("path"), ImportType.IMPORT,
                                     _js_clause_symbols(m.group("clause")), text, m.start())))  # fmt: skip
    for m in _JS_IMPORT_BARE.finditer(text):
        found.append((m.start(), _dep(m.group("path"), ImportType.IMPORT, [], text, m.start())))
    for m in _JS_EXPORT_FROM.finditer(text):
        found.append((m.start(), _dep(m.group("path"), ImportType.IMPORT,
                                     _js_clause_symbols(m.group("clause")), text, m.start())))  # fmt: skip
    for m in _JS_REQUIRE_BOUND.finditer(text):
        binding = m.group("binding")
        symbols = _split_names(binding.strip("{} ")) if binding.startswith("{") else [binding]
        seen_offsets.add(m.start("path"))
        found.append((m.start(), _dep(m.group("path"), ImportType.REQUIRE, symbols, text, m.start())))
    for m in _JS_REQUIRE.finditer(text):
        if m.start("path") in seen_offsets:
            continue
        found.append((m.start(), _dep(m.group("path"), ImportType.REQUIRE, [], text, m.start())))
    for m in _JS_DYNAMIC_IMPORT.finditer(text):
        found.append((m.start(), _dep(m.group("path"), ImportType.REQUIRE, [], text, m.start())))

    found.sort(key=lambda item: item[0])
    return [dep for _, dep in found]


def _dep(
    import_path: str, import_type: ImportType, symbols: list[str], text: str, offset: int
) -> ExtractedDependency:
    return ExtractedDependency(
        import_path=import_path,
        import_type=import_type,
        is_external=_js_is_external(import_path),
        symbols=symbols,
        line=_line_of(text, offset),
    )


# =============================================================================
# Python
# =============================================================================

_PY_IMPORT = re.compile(r"^[ \t]*import[ \t]+(?P<body>[^\n#;]+)", re.MULTILINE)
_PY_FROM = re.compile(
    r"^[ \t]*from[ \t]+(?P<module>\.+[\w.]*|[\w.]+)[ \t]+import[ \t]+(?P<body>\([^)]*\)|[^\n#;]+)",
    re.MULTILINE,
)


def parse_python_imports(text: str, path: str) -> list[ExtractedDependency]:  # noqa: ARG001
    found: list[tuple[int, ExtractedDependency]] = []

    for m in _PY_IMPORT.finditer(text):
        line = _line_of(text, m.start())
        for part in m.group("body").split(","):
            part = part.strip()
            if not part:
                continue
            module, _, alias = part.partition(" as ")
            module = module.strip()
            found.append(
                (
                    m.start(),
                    ExtractedDependency(
                        import_path=module,
                        import_type=ImportType.IMPORT,
                        is_external=not module.startswith("."),
                        symbols=[alias.strip() or module],
                        line=line,
                    ),
                )
            )

    for m in _PY_FROM.finditer(text):
        module = m.group("module")
        body = m.group("body").strip().strip("()")
        body = "\n".join(line.split("#", 1)[0] for line in body.splitlines())
        symbols = [WILDCARD] if body.strip() == WILDCARD else _split_names(body.replace("\n", ","))
        found.append(
            (
                m.start(),
                ExtractedDependency(
                    import_path=module,
                    import_type=ImportType.IMPORT,
                    is_external=not module.startswith("."),
                    symbols=symbols,
                    line=_line_of(text, m.start()),
                ),
            )
        )

    found.sort(key=lambda item: item[0])
    return [dep for _, dep in found]


# =============================================================================
# Java
# =============================================================================

_JAVA_PACKAGE = re.compile(r"^\s*package\s+(?P<name>[\w.]+)\s*;", re.MULTILINE)
_JAVA_IMPORT = re.compile(
    r"^\s*import\s+(?:static\s+)?(?P<path>[\w.]+?)(?P<wild>\.\*)?\s*;", re.MULTILINE
)


def parse_java_imports(text: str, path: str) -> list[ExtractedDependency]:  # noqa: ARG001
    package_match = _JAVA_PACKAGE.search(text)
    package = package_match.group("name") if package_match else None
    deps: list[ExtractedDependency] = []
    for m in _JAVA_IMPORT.finditer(text):
        import_path = m.group("path")
        if m.group("wild"):
            symbols = [WILDCARD]
        else:
            symbols = [import_path.rsplit(".", 1)[-1]]
        local = package is not None and (
            import_path == package or import_path.startswith(package + ".")
        )
        deps.append(
            ExtractedDependency(
                import_path=import_path + (".*" if m.group("wild") else ""),
                import_type=ImportType.IMPORT,
                is_external=not local,
                symbols=symbols,
                line=_line_of(text, m.start()),
            )
        )
    return deps


# =============================================================================
# C / C++
# =============================================================================

_C_INCLUDE = re.compile(r'^[ \t]*#[ \t]*include[ \t]*(?P<open>[<"])(?P<path>[^>"]+)[>"]', re.MULTILINE)


def parse_c_includes(text: str, path: str) -> list[ExtractedDependency]:  # noqa: ARG001
    return [
        ExtractedDependency(
            import_path=m.group("path"),
            import_type=ImportType.INCLUDE,
            is_external=m.group("open") == "<",
            symbols=[],
            line=_line_of(text, m.start()),
        )
        for m in _C_INCLUDE.finditer(text)
    ]


# =============================================================================
# Go
# =============================================================================

_GO_IMPORT_SINGLE = re.compile(
    r'^[ \t]*import[ \t]+(?:(?P<alias>[\w.]+)[ \t]+)?"(?P<path>[^"]+)"', re.MULTILINE
)
_GO_IMPORT_BLOCK = re.compile(r"^[ \t]*import[ \t]*\((?P<body>[^)]*)\)", re.MULTILINE)
_GO_IMPORT_SPEC = re.compile(r'(?:(?P<alias>[\w.]+)[ \t]+)?"(?P<path>[^"]+)"')


def parse_go_imports(text: str, path: str) -> list[ExtractedDependency]:  # noqa: ARG001
    found: list[tuple[int, ExtractedDependency]] = []

    def add(offset: int, spec: re.Match[str]) -> None:
        import_path = spec.group("path")
        alias = spec.group("alias")
        found.append(
            (
                offset,
                ExtractedDependency(
                    import_path=import_path,
                    import_type=ImportType.IMPORT,
                    is_external=not import_path.startswith(("./", "../")),
                    symbols=[alias or import_path.rsplit("/", 1)[-1]],
                    line=_line_of(text, offset),
                ),
            )
        )

    for m in _GO_IMPORT_SINGLE.finditer(text):
        add(m.start(), m)
    for block in _GO_IMPORT_BLOCK.finditer(text):
        body_start = block.start("body")
        for spec in _GO_IMPORT_SPEC.finditer(block.group("body")):
            add(body_start + spec.start(), spec)

    found.sort(key=lambda item: item[0])
    return [dep for _, dep in found]


# =============================================================================
# Rust
# =============================================================================

_RUST_USE = re.compile(r"^[ \t]*(?:pub(?:\([^)]*\))?[ \t]+)?use[ \t]+(?P<tree>[^;]+);", re.MULTILINE)
_RUST_MOD = re.compile(r"^[ \t]*(?:pub(?:\([^)]*\))?[ \t]+)?mod[ \t]+(?P<name>\w+)[ \t]*;", re.MULTILINE)
_RUST_LOCAL_ROOTS = ("crate::", "self::", "super::")


def parse_rust_imports(text: str, path: str) -> list[ExtractedDependency]:  # noqa: ARG001
    found: list[tuple[int, ExtractedDependency]] = []

    for m in _RUST_USE.finditer(text):
        tree = " ".join(m.group("tree").split())
        if "::{" in tree:
            base, _, rest = tree.partition("::{")
            symbols = _split_names(rest.rstrip("}"))
            symbols = [WILDCARD if s == "*" else s.rsplit("::", 1)[-1] for s in symbols]
        elif tree.endswith("::*"):
            base, symbols = tree[:-3], [WILDCARD]
        else:
            base_path, _, alias = tree.partition(" as ")
            base = base_path.strip()
            symbols = [alias.strip() or base.rsplit("::", 1)[-1]]
            base = base.rsplit("::", 1)[0] if "::" in base else base
        found.append(
            (
                m.start(),
                ExtractedDependency(
                    import_path=base,
                    import_type=ImportType.IMPORT,
                    is_external=not (base + "::").startswith(_RUST_LOCAL_ROOTS),
                    symbols=symbols,
                    line=_line_of(text, m.start()),
                ),
            )
        )

    for m in _RUST_MOD.finditer(text):
        name = m.group("name")
        found.append(
            (
                m.start(),
                ExtractedDependency(
                    import_path=f"self::{name}",
                    import_type=ImportType.IMPORT,
                    is_external=False,
                    symbols=[name],
                    line=_line_of(text, m.start()),
                ),
            )
        )

    found.sort(key=lambda item: item[0])
    return [dep for _, dep in found]


ImportParser = Callable[[str, str], list[ExtractedDependency]]

IMPORT_PARSERS: dict[str, ImportParser] = {
    "javascript": parse_javascript_imports,
    "typescript": parse_javascript_imports,
    "python": parse_python_imports,
    "java": parse_java_imports,
    "c": parse_c_includes,
    "cpp": parse_c_includes,
    "go": parse_go_imports,
    "rust": parse_rust_imports,
}
