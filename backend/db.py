# backend/db.py
import os
from contextlib import contextmanager
from typing import Iterator, Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

DB_USER = os.getenv("POSTGRES_USER", "postgres")
DB_PWD  = os.getenv("POSTGRES_PASSWORD", "postgres")
DB_HOST = os.getenv("DB_HOST", "db")
DB_PORT = os.getenv("DB_PORT", "5432")
DB_NAME = os.getenv("POSTGRES_DB", "health_facilities")

DATABASE_URL = os.getenv(
    "DATABASE_URL",
    f"postgresql+psycopg2://{DB_USER}:{DB_PWD}@{DB_HOST}:{DB_PORT}/{DB_NAME}",
)

POOL_SIZE = int(os.getenv("DB_POOL_SIZE", "5"))
MAX_OVERFLOW = int(os.getenv("DB_MAX_OVERFLOW", "10"))
POOL_TIMEOUT = float(os.getenv("DB_POOL_TIMEOUT", "10"))


class Database:
    """Owns the engine and connection pool for the facility store.

    Built once at process start and handed to ``create_app``; every query
    borrows a session through :meth:`session` and ``dispose`` closes the pool.
    """

    def __init__(self, url: str = DATABASE_URL, engine: Optional[Engine] = None, **engine_kwargs) -> None:
        if engine is None:
            options = {
                "pool_pre_ping": True,
                "pool_size": POOL_SIZE,
                "max_overflow": MAX_OVERFLOW,
                "pool_timeout": POOL_TIMEOUT,
            }
            options.update(engine_kwargs)
            engine = create_engine(url, **options)
        self.engine = engine
        self.session_factory = sessionmaker(bind=engine, autoflush=False)

    @contextmanager
    def session(self) -> Iterator[Session]:
        s = self.session_factory()
        try:
            yield s
        finally:
            s.close()

    def dispose(self) -> None:
        self.engine.dispose()
