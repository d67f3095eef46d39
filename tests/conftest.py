from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Callable

import pytest

from app import create_app


class FakeRow(tuple):
    """Stands in for sqlalchemy Row: tuple unpacking, attribute access, _mapping."""

    def __new__(cls, **fields: Any):
        row = super().__new__(cls, tuple(fields.values()))
        row._fields_map = fields
        return row

    def __getattr__(self, name: str) -> Any:
        try:
            return self._fields_map[name]
        except KeyError:
            raise AttributeError(name) from None

    @property
    def _mapping(self) -> dict[str, Any]:
        return dict(self._fields_map)


class FakeResult:
    def __init__(self, rows: list[FakeRow]) -> None:
        self._rows = rows

    def all(self) -> list[FakeRow]:
        return list(self._rows)

    def one(self) -> FakeRow:
        assert len(self._rows) == 1
        return self._rows[0]

    def scalar_one(self) -> Any:
        return self.one()[0]


class FakeSession:
    def __init__(self, handler: Callable[[Any], list[FakeRow]]) -> None:
        self.handler = handler
        self.statements: list[Any] = []
        self.added: list[Any] = []
        self.commits = 0
        self.rollbacks = 0
        self.closed = False

    def execute(self, statement, *args, **kwargs) -> FakeResult:
        self.statements.append(statement)
        return FakeResult(self.handler(statement))

    def add_all(self, rows) -> None:
        self.added.extend(rows)

    def commit(self) -> None:
        self.commits += 1

    def rollback(self) -> None:
        self.rollbacks += 1

    def close(self) -> None:
        self.closed = True


class FakeDatabase:
    def __init__(self, handler: Callable[[Any], list[FakeRow]] | None = None) -> None:
        self.handler = handler or (lambda _statement: [])
        self.sessions: list[FakeSession] = []

    @contextmanager
    def session(self):
        s = FakeSession(self.handler)
        self.sessions.append(s)
        try:
            yield s
        finally:
            s.close()

    def dispose(self) -> None:
        pass


def facility_row(**overrides: Any) -> FakeRow:
    fields: dict[str, Any] = {
        "id": 1,
        "osm_id": 1001,
        "osm_type": "node",
        "name": "Kamuzu Central Hospital",
        "name_en": "Kamuzu Central Hospital",
        "name_ny": None,
        "amenity": "hospital",
        "building": None,
        "healthcare": "hospital",
        "healthcare_speciality": None,
        "operator_type": "government",
        "capacity_persons": 800,
        "addr_full": None,
        "addr_city": "Lilongwe",
        "source": "survey",
        "longitude": 33.7833,
        "latitude": -13.9833,
    }
    fields.update(overrides)
    return FakeRow(**fields)


@pytest.fixture
def fake_db() -> FakeDatabase:
    return FakeDatabase()


@pytest.fixture
def client(fake_db: FakeDatabase):
    app = create_app(fake_db)
    app.config["TESTING"] = True
    return app.test_client()
