from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from hedrap.cache_store import CacheStore
from hedrap.db import get_db, init_db
from hedrap.deps import get_battle_contract, get_dao_contract, get_ticket_contract
from hedrap.main import app

BATTLE_ADDRESS = "0x" + "ba" * 20
DAO_ADDRESS = "0x" + "da" * 20
TICKET_ADDRESS = "0x" + "7c" * 20


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db(engine):
    session = sessionmaker(bind=engine, autoflush=False)()
    yield session
    session.close()


@pytest.fixture
def cache(db):
    return CacheStore(db)


@pytest.fixture
def battles():
    m = MagicMock(name="BattleContract")
    m.address = BATTLE_ADDRESS
    return m


@pytest.fixture
def dao():
    m = MagicMock(name="DaoContract")
    m.address = DAO_ADDRESS
    return m


@pytest.fixture
def tickets():
    m = MagicMock(name="TicketContract")
    m.address = TICKET_ADDRESS
    return m


@pytest.fixture
def client(db, battles, dao, tickets):
    def override_db():
        yield db

    app.dependency_overrides[get_db] = override_db
    app.dependency_overrides[get_battle_contract] = lambda: battles
    app.dependency_overrides[get_dao_contract] = lambda: dao
    app.dependency_overrides[get_ticket_contract] = lambda: tickets

    # No context manager: the lifespan (config validation, init_db) stays off.
    yield TestClient(app)

    app.dependency_overrides.clear()
