"""Tests for import path resolution against indexed files."""

from __future__ import annotations

from codescope.index._internal.cache import FileLookupCache
from codescope.index._internal.db.store import FileUpsert, IndexStore
from codescope.index._internal.indexing.resolver import (
    DependencyResolver,
    c_candidates,
    go_candidates,
    java_candidates,
    javascript_candidates,
    python_candidates,
    rust_candidates,
)


def _add(store: IndexStore, *paths: str) -> None:
    for path in paths:
        store.upsert_file(
            FileUpsert(
                path=path, content="", hash=path, size=0, language="unknown", last_modified=0.0
            )
        )


class TestJavaScriptCandidates:
    """Relative and root-anchored module specifiers."""

    def test_extension_and_index_probing(self) -> None:
        candidates = javascript_candidates("./utils", "src/app.js", [])
        assert candidates[0] == "src/utils"
        assert candidates[1:7] == [
            "src/utils.ts",
            "src/utils.tsx",
            "src/utils.js",
            "src/utils.jsx",
            "src/utils.mjs",
            "src/utils.cjs",
        ]
        assert "src/utils/index.js" in candidates

    def test_compiled_extension_maps_to_source(self) -> None:
        candidates = javascript_candidates("./a.js", "src/b.ts", [])
        assert candidates[:2] == ["src/a.js", "src/a.ts"]

    def test_parent_and_root_anchored(self) -> None:
        assert javascript_candidates("../lib/x", "src/app/main.js", [])[0] == "src/lib/x"
        assert javascript_candidates("/lib/x", "src/app.js", [])[0] == "lib/x"

    def test_escaping_root_and_packages(self) -> None:
        assert javascript_candidates("../../x", "a.js", []) == []
        assert javascript_candidates("react", "a.js", []) == []


class TestPythonCandidates:
    """Relative dots and absolute modules."""

    def test_relative_module(self) -> None:
        assert python_candidates(".models", "pkg/app.py", ["User"]) == [
            "pkg/models.py",
            "pkg/models/__init__.py",
        ]

    def test_parent_package_sibling_import(self) -> None:
        assert python_candidates("..", "pkg/sub/mod.py", ["x"]) == ["pkg/x.py", "pkg/__init__.py"]

    def test_from_dot_import_at_root(self) -> None:
        assert python_candidates(".", "app.py", ["util"]) == ["util.py", "__init__.py"]

    def test_absolute_module_tries_src_layout(self) -> None:
        assert python_candidates("myapp.core", "main.py", []) == [
            "myapp/core.py",
            "src/myapp/core.py",
            "myapp/core/__init__.py",
            "src/myapp/core/__init__.py",
        ]


class TestOtherCandidates:
    """Java, C, Go and Rust."""

    def test_java_source_roots(self) -> None:
        assert java_candidates("com.example.Foo", "App.java", []) == [
            "com/example/Foo.java",
            "src/main/java/com/example/Foo.java",
            "src/test/java/com/example/Foo.java",
            "src/com/example/Foo.java",
        ]
        assert java_candidates("com.example.*", "App.java", []) == []

    def test_c_include_roots(self) -> None:
        assert c_candidates("util.h", "src/main.c", []) == [
            "src/util.h",
            "util.h",
            "include/util.h",
        ]

    def test_go_relative_only(self) -> None:
        assert go_candidates("./internal/store", "cmd/main.go", []) == [
            "cmd/internal/store.go",
            "cmd/internal/store/store.go",
            "cmd/internal/store/main.go",
        ]
        assert go_candidates("fmt", "main.go", []) == []

    def test_rust_module_paths(self) -> None:
        assert rust_candidates("crate::config", "src/main.rs", []) == [
            "src/config.rs",
            "src/config/mod.rs",
        ]
        assert rust_candidates("self::parser", "src/lib.rs", [])[0] == "src/parser.rs"
        assert rust_candidates("self::parser", "src/engine.rs", [])[0] == "src/engine/parser.rs"
        assert rust_candidates("super::util", "src/engine/run.rs", [])[0] == "src/engine/util.rs"
        assert rust_candidates("crate::a::B", "src/lib.rs", []) == [
            "src/a/B.rs",
            "src/a/B/mod.rs",
            "src/a.rs",
            "src/a/mod.rs",
        ]
        assert rust_candidates("std::fmt", "src/lib.rs", []) == []


class TestDependencyResolver:
    """Resolution picks the first indexed candidate."""

    def test_resolves_first_present_candidate(self, store: IndexStore) -> None:
        _add(store, "src/utils.ts", "src/utils/index.ts")
        resolver = DependencyResolver(FileLookupCache(store))
        target = resolver.resolve("./utils", "src/app.ts", "typescript")
        assert target is not None
        assert target.path == "src/utils.ts"

    def test_unresolved_returns_none(self, store: IndexStore) -> None:
        resolver = DependencyResolver(FileLookupCache(store))
        assert resolver.resolve("./missing", "src/app.ts", "typescript") is None

    def test_never_resolves_to_source_itself(self, store: IndexStore) -> None:
        _add(store, "pkg/__init__.py")
        resolver = DependencyResolver(FileLookupCache(store))
        assert resolver.resolve(".", "pkg/__init__.py", "python", ["x"]) is None

    def test_unknown_language(self, store: IndexStore) -> None:
        resolver = DependencyResolver(FileLookupCache(store))
        assert resolver.candidates("./x", "a.md", "markdown") == []
