import datetime

from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

# Base class for all ORM models
Base = declarative_base()


def utcnow():
    """Naive UTC timestamp, the form every DateTime column stores."""
    return datetime.datetime.now(datetime.timezone.utc).replace(tzinfo=None)


# Import all models so that SQLAlchemy knows about them when creating tables
from .user import User
from .category import Category
from .transaction import Transaction
from .plaid import PlaidItem, PlaidTransaction, PlaidAccount


def init_db(database_url: str, **engine_kwargs):
    """
    Initialize the database connection and create tables for all registered ORM models.
    """
    if database_url.startswith("sqlite"):
        connect_args = engine_kwargs.setdefault("connect_args", {})
        connect_args.setdefault("check_same_thread", False)
    engine = create_engine(database_url, **engine_kwargs)
    # Create all tables defined by subclasses of Base
    Base.metadata.create_all(engine)
    return engine


def make_session_factory(engine):
    """
    Session factory handed to every request and job; objects stay readable after commit.
    """
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
