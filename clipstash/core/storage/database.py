"""SQLite storage backend using SQLAlchemy"""

import json
import os
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import List, Sequence, Union

from sqlalchemy import Column, Float, Integer, String, Text, create_engine, text
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from loguru import logger

from .base import StorageBackend
from .errors import StorageUnavailableError
from ..item import ClipItem

Base = declarative_base()


class ClipItemDB(Base):
    """Database model for one history slot"""
    __tablename__ = 'clip_items'

    id = Column(String(64), primary_key=True)
    position = Column(Integer, nullable=False, index=True)
    content = Column(Text, nullable=False)
    captured_at = Column(Float, nullable=False)  # epoch seconds
    item_metadata = Column(Text)  # JSON string, 'metadata' is reserved by SQLAlchemy


class DatabaseStorage(StorageBackend):
    """Structured local database backend"""

    name = "sqlite"

    def __init__(self, db_path: Union[str, Path]):
        """
        Open (or create) the history database

        Args:
            db_path: Path to the SQLite file

        Raises:
            StorageUnavailableError: If the database cannot be opened
        """
        self.db_path = str(db_path)
        self.engine = None
        self.SessionLocal = None
        self._write_lock = threading.Lock()

        self._initialize_database()

    def _initialize_database(self):
        """Initialize database connection and create tables"""
        try:
            Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)

            self.engine = create_engine(
                f'sqlite:///{self.db_path}',
                connect_args={'check_same_thread': False}
            )

            Base.metadata.create_all(bind=self.engine)

            self.SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=self.engine)

            logger.info(f"Database initialized at: {self.db_path}")

        except Exception as e:
            logger.error(f"Failed to initialize database: {e}")
            if self.engine is not None:
                self.engine.dispose()
            raise StorageUnavailableError(f"Cannot open database {self.db_path}: {e}") from e

    @contextmanager
    def get_session(self):
        """Get a new database session with proper cleanup"""
        session: Session = self.SessionLocal()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def load_items(self) -> List[ClipItem]:
        try:
            with self.get_session() as session:
                rows = session.query(ClipItemDB).order_by(ClipItemDB.position.asc()).all()

                items = []
                for row in rows:
                    try:
                        items.append(ClipItem.from_record({
                            'id': row.id,
                            'content': row.content,
                            'captured_at': row.captured_at,
                            'metadata': json.loads(row.item_metadata) if row.item_metadata else {}
                        }))
                    except (AttributeError, KeyError, TypeError, ValueError) as e:
                        logger.error(f"Skipping unreadable row {row.id}: {e}")

            logger.debug(f"Loaded {len(items)} items from database")
            return items

        except Exception as e:
            logger.error(f"Failed to load items from database: {e}")
            return []

    def save_items(self, items: Sequence[ClipItem]) -> bool:
        try:
            with self._write_lock, self.get_session() as session:
                session.query(ClipItemDB).delete()
                session.add_all([
                    ClipItemDB(
                        id=item.id,
                        position=position,
                        content=item.content,
                        captured_at=item.captured_at.timestamp(),
                        item_metadata=json.dumps(item.metadata) if item.metadata else None
                    )
                    for position, item in enumerate(items)
                ])

            logger.debug(f"Saved {len(items)} items to database")
            return True

        except Exception as e:
            logger.error(f"Failed to save items to database: {e}")
            return False

    def clear_storage(self) -> bool:
        try:
            with self._write_lock, self.get_session() as session:
                session.query(ClipItemDB).delete()

            logger.info("Cleared all clipboard items from database")
            # Deleted rows linger in free pages until the file is rebuilt
            self.vacuum()
            return True

        except Exception as e:
            logger.error(f"Failed to clear database: {e}")
            return False

    def get_item_count(self) -> int:
        """Number of stored rows"""
        try:
            with self.get_session() as session:
                return session.query(ClipItemDB).count()
        except Exception as e:
            logger.error(f"Failed to get item count: {e}")
            return 0

    def get_size(self) -> int:
        """Database file size in bytes"""
        if os.path.exists(self.db_path):
            return os.path.getsize(self.db_path)
        return 0

    def vacuum(self) -> bool:
        """Optimize database (VACUUM operation)"""
        try:
            # VACUUM cannot run inside a transaction
            with self._write_lock, self.engine.connect().execution_options(isolation_level="AUTOCOMMIT") as conn:
                conn.execute(text("VACUUM"))
            logger.info("Database optimized (VACUUM completed)")
            return True

        except Exception as e:
            logger.error(f"VACUUM failed: {e}")
            return False

    def close(self) -> None:
        if self.engine:
            self.engine.dispose()
            logger.info("Database connection closed")
