"""Read-through File lookups scoped to one indexing run or query."""

from __future__ import annotations

from collections.abc import Iterable

from codescope.index._internal.db.store import IndexStore
from codescope.index.models import File


class FileLookupCache:
    """Memoizes File rows by path and by id, including misses.

    Instances are short-lived and passed explicitly. Writers that change a
    path during the run call remember() or forget() to keep it coherent.
    """

    def __init__(self, store: IndexStore) -> None:
        self._store = store
        self._by_path: dict[str, File | None] = {}
        self._by_id: dict[int, File | None] = {}

    def by_path(self, path: str) -> File | None:
        if path not in self._by_path:
            file = self._store.get_file(path)
            self._by_path[path] = file
            if file is not None and file.id is not None:
                self._by_id[file.id] = file
        return self._by_path[path]

    def by_id(self, file_id: int) -> File | None:
        if file_id not in self._by_id:
            file = self._store.get_file_by_id(file_id)
            self._by_id[file_id] = file
            if file is not None:
                self._by_path[file.path] = file
        return self._by_id[file_id]

    def many_by_id(self, file_ids: Iterable[int]) -> dict[int, File]:
        file_ids = list(file_ids)
        missing = [fid for fid in set(file_ids) if fid not in self._by_id]
        if missing:
            found = self._store.get_files_by_ids(missing)
            for fid in missing:
                file = found.get(fid)
                self._by_id[fid] = file
                if file is not None:
                    self._by_path[file.path] = file
        return {
            fid: file
            for fid in file_ids
            if (file := self._by_id.get(fid)) is not None
        }

    def exists(self, path: str) -> bool:
        return self.by_path(path) is not None

    def remember(self, file: File) -> None:
        self._by_path[file.path] = file
        if file.id is not None:
            self._by_id[file.id] = file

    def forget(self, path: str) -> None:
        file = self._by_path.pop(path, None)
        if file is not None and file.id is not None:
            self._by_id.pop(file.id, None)

    def __len__(self) -> int:
        return sum(1 for file in self._by_path.values() if file is not None)
