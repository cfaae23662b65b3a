import os

from sqlalchemy import create_engine, event, inspect
from sqlalchemy.orm import sessionmaker, declarative_base

DB_URL= os.getenv("DATABASE_URL", "sqlite:///customer_orders.db")

Base= declarative_base()

def make_engine(url: str):
    engine= create_engine(url, pool_pre_ping=True)
    if engine.dialect.name == "sqlite":
        # sqlite ignores ON DELETE CASCADE unless enabled per connection
        @event.listens_for(engine, "connect")
        def _enable_foreign_keys(dbapi_connection, connection_record):
            cursor= dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()
    return engine

def make_session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)

engine= make_engine(DB_URL)
SessionLocal= make_session_factory(engine)

def init_db(bind=None):
    Base.metadata.create_all(bind=bind or engine)

class ToDictMixIn:
    def to_dict(self):
        # attribute keys, not column names: CustomerId is mapped as id
        return {attr.key: getattr(self, attr.key) for attr in inspect(self).mapper.column_attrs}
