"""
Database schema and connection management.

Uses SQLite with SQLAlchemy as a KeyValueStore backend for cached
resolutions and pattern logs.
"""

import json
from datetime import datetime
from pathlib import Path
from typing import Any, Iterator, Optional

from sqlalchemy import Column, DateTime, String, Text, create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

Base = declarative_base()


class StoreEntry(Base):
    """One JSON-encoded value."""

    __tablename__ = "store_entries"

    key = Column(String, primary_key=True)  # cache:first|last|org or patterns:<log>
    value = Column(Text, nullable=False)
    created_at = Column(DateTime, nullable=False, default=datetime.now)
    updated_at = Column(DateTime, nullable=False, default=datetime.now, onupdate=datetime.now)


def init_database(db_path: Path) -> None:
    """
    Initialize database and create tables.

    Args:
        db_path: Path to SQLite database file
    """
    db_path.parent.mkdir(parents=True, exist_ok=True)
    engine = create_engine(f"sqlite:///{db_path}")
    Base.metadata.create_all(engine)
    engine.dispose()


def get_session(db_path: Path):
    """
    Get database session.

    Args:
        db_path: Path to SQLite database file

    Returns:
        SQLAlchemy session
    """
    engine = create_engine(f"sqlite:///{db_path}")
    Session = sessionmaker(bind=engine)
    return Session()


class SqliteStore:
    """KeyValueStore persisted in a SQLite table."""

    def __init__(self, db_path: Path):
        self.db_path = Path(db_path)
        init_database(self.db_path)
        self._engine = create_engine(f"sqlite:///{self.db_path}")
        self._Session = sessionmaker(bind=self._engine)

    def get(self, key: str) -> Optional[Any]:
        with self._Session() as session:
            entry = session.get(StoreEntry, key)
            return json.loads(entry.value) if entry is not None else None

    def set(self, key: str, value: Any) -> None:
        encoded = json.dumps(value, ensure_ascii=False)
        with self._Session() as session:
            entry = session.get(StoreEntry, key)
            if entry is None:
                session.add(StoreEntry(key=key, value=encoded))
            else:
                entry.value = encoded
            session.commit()

    def keys(self) -> Iterator[str]:
        with self._Session() as session:
            return iter([k for (k,) in session.query(StoreEntry.key).order_by(StoreEntry.key)])

    def __len__(self) -> int:
        with self._Session() as session:
            return session.query(StoreEntry).count()

    def close(self) -> None:
        self._engine.dispose()
