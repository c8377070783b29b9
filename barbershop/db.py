# barbershop/db.py

from sqlalchemy.engine import Engine
from sqlmodel import SQLModel, create_engine, Session

from barbershop.config import settings


def make_engine(database_url: str, echo: bool = False) -> Engine:
    connect_args = {}
    if database_url.startswith("sqlite"):
        # required for SQLite + FastAPI threadpool
        connect_args = {"check_same_thread": False, "timeout": 15}
    return create_engine(
        database_url,
        echo=echo,
        pool_pre_ping=True,
        connect_args=connect_args,
    )


# Engine = connection to the database
engine = make_engine(settings.DATABASE_URL, echo=settings.DB_ECHO)


def create_db_and_tables(bind: Engine = engine) -> None:
    # models must be imported so their tables are registered on the metadata
    from barbershop import models  # noqa: F401

    SQLModel.metadata.create_all(bind)


# Dependency: one session per request
def get_session():
    with Session(engine) as session:
        yield session
