"""
Pytest configuration and fixtures for the rental API tests.

Every test gets its own file-backed SQLite store under ``tmp_path`` so the
import workers (which write from several threads) see one shared database.
"""
import csv
import io

import pytest
from fastapi.testclient import TestClient

from rental_api.core.config import Settings
from rental_api.db.session import build_engine
from rental_api.db.store import DocumentStore
from rental_api.main import create_app

PROPERTY_HEADER = [
    "物件No", "物件名", "物件名カナ", "郵便番号", "都道府県名",
    "市区町村名", "町地域", "丁目など", "番地", "物件分類",
]
MANAGEMENT_HEADER = ["物件No", "業務対象開始", "業務対象終了"]
ROOM_HEADER = [
    "物件No", "部屋No", "間取り", "契約状況", "契約始期", "契約者名(SJIS)", "契約者No",
]


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        _env_file=None,
        database_url=f"sqlite:///{tmp_path / 'rental.db'}",
        import_max_concurrent_writes=2,
    )


@pytest.fixture
def store(settings):
    store = DocumentStore(build_engine(settings.database_url))
    store.create_schema()
    yield store
    store.close()


@pytest.fixture
def client(settings, store):
    app = create_app(settings=settings, store=store)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def make_csv():
    """
    Build an in-memory vendor export.

    Returns a factory ``(header, rows, encoding="cp932") -> BytesIO``.
    """
    def _make(header, rows, encoding="cp932"):
        buffer = io.StringIO()
        writer = csv.writer(buffer, lineterminator="\r\n")
        writer.writerow(header)
        writer.writerows(rows)
        return io.BytesIO(buffer.getvalue().encode(encoding))

    return _make


def property_row(no, name="テストハイツ", kind="マンション", block="1", house_number="2"):
    return [no, name, "テストハイツ", "100-0001", "東京都", "千代田区", "千代田", block, house_number, kind]


@pytest.fixture
def property_rows():
    """Factory for property export rows keyed by vendor property number."""
    def _rows(numbers, **overrides):
        return [property_row(str(no), **overrides) for no in numbers]

    return _rows


@pytest.fixture
def property_csv(make_csv):
    return lambda rows, encoding="cp932": make_csv(PROPERTY_HEADER, rows, encoding)


@pytest.fixture
def management_csv(make_csv):
    return lambda rows, encoding="cp932": make_csv(MANAGEMENT_HEADER, rows, encoding)


@pytest.fixture
def room_csv(make_csv):
    return lambda rows, encoding="cp932": make_csv(ROOM_HEADER, rows, encoding)
