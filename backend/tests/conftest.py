import itertools
import os

# Keep the application's module-level engine off the working directory.
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from barter.db.session import Base, enable_sqlite_foreign_keys
from barter.models import Product, User


def build_engine(url: str = "sqlite:///:memory:"):
    kwargs = {"future": True, "connect_args": {"check_same_thread": False}}
    if url == "sqlite:///:memory:":
        kwargs["poolclass"] = StaticPool
    engine = create_engine(url, **kwargs)
    enable_sqlite_foreign_keys(engine)
    Base.metadata.create_all(bind=engine)
    return engine


@pytest.fixture
def engine():
    engine = build_engine()
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, future=True)


@pytest.fixture
def session(session_factory):
    with session_factory() as session:
        yield session


@pytest.fixture
def make_user(session):
    counter = itertools.count(1)

    def _make(name: str = "user", **fields) -> User:
        fields.setdefault("is_verified", True)
        user = User(name=name, email=f"{name}{next(counter)}@example.com", **fields)
        session.add(user)
        session.commit()
        return user

    return _make


@pytest.fixture
def make_product(session):
    def _make(owner: User, **fields) -> Product:
        fields.setdefault("title", f"{owner.name}'s listing")
        product = Product(owner_id=owner.id, **fields)
        session.add(product)
        session.commit()
        return product

    return _make
