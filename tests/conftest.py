import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from ledger.app import create_app
from ledger.models import Base, make_session_factory
from ledger.services.categories import create_category
from ledger.services.db import run_in_transaction
from ledger.services.users import create_user


@pytest.fixture(scope="module")
def engine():
    """
    In-memory SQLite engine with the full schema.
    """
    engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)
    return engine


@pytest.fixture(scope="function")
def session(engine):
    """
    Opens a transaction before the test and rolls it back afterwards.
    """
    connection = engine.connect()
    trans = connection.begin()
    Session = sessionmaker(bind=connection)
    session = Session()
    yield session
    session.close()
    trans.rollback()
    connection.close()


@pytest.fixture(scope="function")
def session_factory():
    """
    Fresh database per test; every session shares one in-memory connection.
    """
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield make_session_factory(engine)
    engine.dispose()


@pytest.fixture
def app(session_factory):
    app = create_app(session_factory)
    app.config["TESTING"] = True
    return app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def add_user(session_factory):
    def _add(clerk_id="user_1", name="Alice", email="alice@example.com"):
        return run_in_transaction(session_factory, create_user, clerk_id, name, email)
    return _add


@pytest.fixture
def add_category(session_factory):
    def _add(owner_id="user_1", name="Groceries", category_type="expense", budget=100, period="monthly"):
        return run_in_transaction(
            session_factory, create_category, owner_id, name, category_type, budget, period
        )
    return _add
