# tests/conftest.py
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.config.database import get_db, init_db
from app.core.cache import ResponseCache

# =========================================
# Base SQLite en memoria, una por test
# =========================================
@pytest.fixture(scope="function")
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(bind=engine)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture(scope="function")
def session_maker(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="function")
def db(session_maker):
    session = session_maker()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(scope="function")
def cache():
    return ResponseCache(ttl_seconds=60, max_entries=100)


@pytest.fixture(scope="function")
def statements(engine):
    """
    Sentencias SQL ejecutadas contra el engine (viajes a la base).
    Vaciar la lista antes de la operación a medir.
    """
    executed = []

    def _record(conn, cursor, statement, parameters, context, executemany):
        executed.append(statement)

    event.listen(engine, "before_cursor_execute", _record)
    try:
        yield executed
    finally:
        event.remove(engine, "before_cursor_execute", _record)


@pytest.fixture(scope="function")
def client(session_maker, cache):
    """
    TestClient sin lifespan: la base y la caché las proveen los fixtures.
    """
    from app.main import app

    def override_get_db():
        session = session_maker()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.state.response_cache = cache
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
