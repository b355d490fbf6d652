"""Map import paths as written to indexed repository files.

Each language family produces an ordered list of candidate repo-relative
paths; the first one present in the index wins. Candidates that would
escape the repository root are discarded.
"""

from __future__ import annotations

import posixpath
from collections.abc import Callable

from codescope.index._internal.cache import FileLookupCache
from codescope.index.models import File

_JS_EXTENSIONS = (".ts", ".tsx", ".js", ".jsx", ".mjs", ".cjs")
_JAVA_SOURCE_ROOTS = ("", "src/main/java/", "src/test/java/", "src/")
_C_INCLUDE_ROOTS = ("include/", "src/")
_RUST_CRATE_FILES = ("lib.rs", "main.rs", "mod.rs")


def _normalize(path: str) -> str | None:
    normalized = posixpath.normpath(path)
    if normalized in (".", "") or normalized.startswith("../") or normalized == "..":
        return None
    return normalized.lstrip("/")


def _dedupe(paths: list[str | None]) -> list[str]:
    seen: set[str] = set()
    result: list[str] = []
    for path in paths:
        if path is not None and path not in seen:
            seen.add(path)
            result.append(path)
    return result


def javascript_candidates(import_path: str, source_path: str, symbols: list[str]) -> list[str]:  # noqa: ARG001
    if import_path.startswith("/"):
        base = _normalize(import_path)
    elif import_path.startswith("."):
        base = _normalize(posixpath.join(posixpath.dirname(source_path), import_path))
    else:
        return []
    if base is None:
        return []

    stem, ext = posixpath.splitext(base)
    paths: list[str | None] = [base]
    # TypeScript sources import compiled names: "./a.js" may be "./a.ts"
    if ext in (".js", ".jsx", ".mjs", ".cjs"):
        paths.extend(stem + alt for alt in _JS_EXTENSIONS)
    paths.extend(base + e for e in _JS_EXTENSIONS)
    paths.extend(f"{base}/index{e}" for e in _JS_EXTENSIONS)
    return _dedupe(paths)


def python_candidates(import_path: str, source_path: str, symbols: list[str]) -> list[str]:
    if import_path.startswith("."):
        dots = len(import_path) - len(import_path.lstrip("."))
        package = posixpath.dirname(source_path)
        for _ in range(dots - 1):
            package = posixpath.dirname(package)
        rest = import_path[dots:].replace(".", "/")
        base = posixpath.join(package, rest) if rest else package
        paths: list[str | None] = [
            _normalize(f"{base}.py") if rest else None,
            _normalize(f"{base}/__init__.py"),
        ]
        if not rest:
            # "from . import sibling"
            paths = [
                _normalize(posixpath.join(base, f"{name}.py")) for name in symbols if name != "*"
            ] + paths
        return _dedupe(paths)

    base = import_path.replace(".", "/")
    return _dedupe(
        [_normalize(f"{root}{base}.py") for root in ("", "src/")]
        + [_normalize(f"{root}{base}/__init__.py") for root in ("", "src/")]
    )


def java_candidates(import_path: str, source_path: str, symbols: list[str]) -> list[str]:  # noqa: ARG001
    if import_path.endswith(".*"):
        return []
    relative = import_path.replace(".", "/") + ".java"
    return _dedupe([_normalize(root + relative) for root in _JAVA_SOURCE_ROOTS])


def c_candidates(import_path: str, source_path: str, symbols: list[str]) -> list[str]:  # noqa: ARG001
    paths: list[str | None] = [
        _normalize(posixpath.join(posixpath.dirname(source_path), import_path)),
        _normalize(import_path),
    ]
    paths.extend(_normalize(root + import_path) for root in _C_INCLUDE_ROOTS)
    return _dedupe(paths)


def go_candidates(import_path: str, source_path: str, symbols: list[str]) -> list[str]:  # noqa: ARG001
    if not import_path.startswith(("./", "../")):
        return []
    base = _normalize(posixpath.join(posixpath.dirname(source_path), import_path))
    if base is None:
        return []
    name = posixpath.basename(base)
    return _dedupe([f"{base}.go", f"{base}/{name}.go", f"{base}/main.go"])


def _rust_module_dir(source_path: str) -> str:
    """Directory holding the submodules declared by a Rust source file."""
    directory, filename = posixpath.split(source_path)
    if filename in _RUST_CRATE_FILES:
        return directory
    return posixpath.join(directory, posixpath.splitext(filename)[0])


def rust_candidates(import_path: str, source_path: str, symbols: list[str]) -> list[str]:  # noqa: ARG001
    segments = import_path.split("::")
    head, rest = segments[0], segments[1:]
    if head == "crate":
        base = "src"
    elif head == "self":
        base = _rust_module_dir(source_path)
    elif head == "super":
        base = posixpath.dirname(_rust_module_dir(source_path))
        while rest and rest[0] == "super":
            base = posixpath.dirname(base)
            rest = rest[1:]
    else:
        return []

    paths: list[str | None] = []
    # Longest module path first; trailing segments may be items, not modules
    for end in range(len(rest), 0, -1):
        module = posixpath.join(base, *rest[:end])
        paths.append(_normalize(f"{module}.rs"))
        paths.append(_normalize(f"{module}/mod.rs"))
    if not rest and head == "crate":
        paths.extend(_normalize(f"src/{name}") for name in ("lib.rs", "main.rs"))
    return _dedupe(paths)


CandidateFn = Callable[[str, str, list[str]], list[str]]

CANDIDATES: dict[str, CandidateFn] = {
    "javascript": javascript_candidates,
    "typescript": javascript_candidates,
    "python": python_candidates,
    "java": java_candidates,
    "c": c_candidates,
    "cpp": c_candidates,
    "go": go_candidates,
    "rust": rust_candidates,
}


class DependencyResolver:
    """Resolves dependencies against the index through a lookup cache."""

    def __init__(self, lookup: FileLookupCache) -> None:
        self._lookup = lookup

    def candidates(
        self, import_path: str, source_path: str, language: str, symbols: list[str] | None = None
    ) -> list[str]:
        fn = CANDIDATES.get(language)
        if fn is None or not import_path:
            return []
        return [c for c in fn(import_path, source_path, symbols or []) if c != source_path]

    def resolve(
        self, import_path: str, source_path: str, language: str, symbols: list[str] | None = None
    ) -> File | None:
        """First indexed file among the candidates, or None."""
        for candidate in self.candidates(import_path, source_path, language, symbols):
            file = self._lookup.by_path(candidate)
            if file is not None:
                return file
        return None
