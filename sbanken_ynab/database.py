from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker

Base = declarative_base()


def create_db_engine(database_path: Path) -> Engine:
    """Create the SQLite engine for the dedup store, creating its directory if needed."""
    database_path = Path(database_path).expanduser()
    database_path.parent.mkdir(parents=True, exist_ok=True)
    return create_engine(f"sqlite:///{database_path}")


@contextmanager
def get_db(database_path: Path) -> Iterator[Session]:
    """
    Open the local store for the duration of a run.

    Tables are created on first use. The session is closed and the engine
    disposed on every exit path so the file is not left locked.
    """
    # Register ORM tables on Base before create_all
    from sbanken_ynab.app import models  # noqa: F401

    engine = create_db_engine(database_path)
    Base.metadata.create_all(bind=engine)
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
        engine.dispose()
