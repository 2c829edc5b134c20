from sqlalchemy import event
from sqlalchemy.engine import Engine
from sqlmodel import SQLModel, create_engine, Session

from config import DATABASE_ECHO, DATABASE_URL

connect_args = {"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}

engine = create_engine(DATABASE_URL, echo=DATABASE_ECHO, connect_args=connect_args)


@event.listens_for(Engine, "connect")
def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    # SQLite ignores ON DELETE CASCADE / SET NULL unless this is on per connection
    if dbapi_connection.__class__.__module__.startswith("sqlite3"):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


def create_db_and_tables(bind: Engine = engine) -> None:
    import models  # noqa: F401  registers tables on SQLModel.metadata

    SQLModel.metadata.create_all(bind)


def drop_db_and_tables(bind: Engine = engine) -> None:
    import models  # noqa: F401

    SQLModel.metadata.drop_all(bind)


def get_session():
    with Session(engine) as session:
        yield session
