import pytest

from customer_orders.cache import IndexCache
from customer_orders.db import Base, init_db, make_engine, make_session_factory
from customer_orders.store import Store

@pytest.fixture
def engine(tmp_path):
    engine= make_engine(f"sqlite:///{tmp_path}/customer_orders_test.db")
    init_db(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()

@pytest.fixture
def store(engine):
    return Store(make_session_factory(engine))

@pytest.fixture
def cache():
    return IndexCache()
