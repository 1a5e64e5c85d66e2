"""Database engine and declarative base for the stream table."""

from __future__ import annotations

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, sessionmaker
from sqlalchemy.schema import MetaData

from .settings import settings

# Deterministic constraint/index names
NAMING_CONVENTION = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}


class Base(DeclarativeBase):
    metadata = MetaData(naming_convention=NAMING_CONVENTION)


def get_engine(db_url: str | None = None, echo: bool | None = None) -> Engine:
    """Create an engine for ``db_url`` (defaults to ``settings.database_url``).

    SQLite connections are shared across threads: store listeners fire from
    API workers, batch workers and the reconciliation thread.
    """
    chosen_url = db_url or settings.database_url
    connect_args: dict[str, object] = {}
    if chosen_url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
    return create_engine(
        chosen_url,
        echo=settings.echo_sql if echo is None else echo,
        pool_pre_ping=True,
        future=True,
        connect_args=connect_args,
    )


def get_sessionmaker(engine: Engine) -> sessionmaker:
    return sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True, expire_on_commit=False)
