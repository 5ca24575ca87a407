from __future__ import annotations

from datetime import date
from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, delete
from sqlalchemy.orm import sessionmaker

import resale_ledger.persistence.pg as pg
from resale_ledger.core.config import get_settings
from resale_ledger.domain.rates.table import ExchangeRate, ExchangeRateTable
from resale_ledger.persistence.models import Base, DocumentModel
from resale_ledger.persistence.store import SqlDocumentStore

OPERATOR = "Chien-Yu"


@pytest.fixture(scope="session")
def test_db_path(tmp_path_factory: pytest.TempPathFactory) -> Path:
    return tmp_path_factory.mktemp("db") / "test.sqlite"


@pytest.fixture(scope="session", autouse=True)
def configure_test_engine(test_db_path: Path):
    settings = get_settings()
    settings.exports_root = test_db_path.parent / "exports"
    settings.missing_rate_policy = "fallback_one"
    settings.batch_merge_scope = "any"
    settings.include_shipping_in_landed_cost = True

    engine = create_engine(
        f"sqlite+pysqlite:///{test_db_path}",
        future=True,
        connect_args={"check_same_thread": False},
    )
    TestSessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False)

    pg.engine = engine
    pg.SessionLocal = TestSessionLocal

    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(autouse=True)
def clean_documents(configure_test_engine):
    with pg.session_scope() as session:
        session.execute(delete(DocumentModel))
    yield


@pytest.fixture()
def settings():
    return get_settings()


@pytest.fixture()
def store() -> SqlDocumentStore:
    return SqlDocumentStore()


@pytest.fixture()
def client(configure_test_engine):
    from resale_ledger.main import app

    with TestClient(app) as c:
        yield c


@pytest.fixture()
def operator() -> str:
    return OPERATOR


@pytest.fixture()
def krw_rates() -> ExchangeRateTable:
    return ExchangeRateTable(
        [
            ExchangeRate(currency="KRW", date=date(2024, 5, 1), cash_rate="41", visa_rate="42", jcb_rate="0"),
            ExchangeRate(currency="KRW", date=date(2024, 5, 3), cash_rate="40", visa_rate="40.5", jcb_rate="40.2"),
            ExchangeRate(currency="JPY", date=date(2024, 5, 2), cash_rate="4.6", visa_rate="4.7", jcb_rate="4.75"),
        ]
    )
