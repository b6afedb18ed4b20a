"""Unit test fixtures: an in-memory record store.

Documents are JSON round-tripped on the way in and out so that anything
the PostgreSQL jsonb column would reject fails here too.  A transaction
works on a copy that replaces the committed data only on normal exit.
"""

from __future__ import annotations

import json
from contextlib import contextmanager
from typing import Any, Iterator

import pytest

from ptc_roster.shared import StoreConflictError
from ptc_roster.store import DELETE, INSERT, UPDATE, Mutation


def _roundtrip(doc: dict[str, Any]) -> dict[str, Any]:
    return json.loads(json.dumps(doc))


class FakeTransaction:
    def __init__(self, data: dict[tuple[str, str], dict[str, Any]]) -> None:
        self.data = data

    def _scan(self, kind: str, prefix: str | None) -> list[str]:
        return sorted(
            key for k, key in self.data
            if k == kind and (prefix is None or key.startswith(prefix))
        )

    def keys(self, kind: str, prefix: str | None = None) -> list[str]:
        return self._scan(kind, prefix)

    def project(self, kind: str, field: str, prefix: str | None = None) -> dict[str, Any]:
        return {key: self.data[(kind, key)].get(field) for key in self._scan(kind, prefix)}

    def get(self, kind: str, key: str) -> dict[str, Any] | None:
        doc = self.data.get((kind, key))
        return _roundtrip(doc) if doc is not None else None

    def put(self, kind: str, key: str, doc: dict[str, Any]) -> None:
        self.data[(kind, key)] = _roundtrip(doc)

    def mutate(self, mutations: list[Mutation]) -> int:
        for m in mutations:
            k = (m.kind, m.key)
            if m.op == INSERT:
                if k in self.data:
                    raise StoreConflictError(f"insert {m.kind}/{m.key}: already exists")
                self.data[k] = _roundtrip(m.doc)
            elif m.op == UPDATE:
                if k not in self.data:
                    raise StoreConflictError(f"update {m.kind}/{m.key}: not found")
                self.data[k] = _roundtrip(m.doc)
            elif m.op == DELETE:
                self.data.pop(k, None)
            else:
                raise ValueError(f"unknown mutation op {m.op!r}")
        return len(mutations)


class FakeStore:
    def __init__(self) -> None:
        self.data: dict[tuple[str, str], dict[str, Any]] = {}
        self.commits = 0

    @contextmanager
    def transaction(self) -> Iterator[FakeTransaction]:
        working = {k: _roundtrip(v) for k, v in self.data.items()}
        yield FakeTransaction(working)
        self.data = working
        self.commits += 1

    def close(self) -> None:
        pass

    def count(self, kind: str) -> int:
        return sum(1 for k, _ in self.data if k == kind)


@pytest.fixture
def store() -> FakeStore:
    return FakeStore()
