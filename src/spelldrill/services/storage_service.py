"""Key/value storage for serialized session snapshots."""
import logging
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from spelldrill.models.models import SnapshotRecord
from spelldrill.monitoring import storage_errors

logger = logging.getLogger(__name__)


class SnapshotStore:
    """Service for reading and writing snapshot blobs by key."""

    def __init__(self, db: Session):
        """Initialize the service with a database session."""
        self.db = db

    def _get_record(self, key: str) -> Optional[SnapshotRecord]:
        return self.db.query(SnapshotRecord).filter(SnapshotRecord.key == key).first()

    def get(self, key: str) -> Optional[str]:
        """Get the stored blob for a key, None if absent or unreadable."""
        try:
            record = self._get_record(key)
        except SQLAlchemyError as e:
            logger.error(f"Error reading snapshot {key}: {e}")
            storage_errors.labels(operation_type="get").inc()
            self.db.rollback()
            return None
        return record.payload if record else None

    def set(self, key: str, payload: str) -> None:
        """Store a blob under a key. Best effort: failures are only logged."""
        try:
            record = self._get_record(key)
            if record:
                record.payload = payload
            else:
                self.db.add(SnapshotRecord(key=key, payload=payload))
            self.db.commit()
            logger.debug(f"Saved snapshot {key} ({len(payload)} bytes)")
        except SQLAlchemyError as e:
            logger.error(f"Error saving snapshot {key}: {e}")
            storage_errors.labels(operation_type="set").inc()
            self.db.rollback()

    def delete(self, key: str) -> None:
        """Remove the blob stored under a key, if any."""
        try:
            deleted = self.db.query(SnapshotRecord).filter(SnapshotRecord.key == key).delete()
            self.db.commit()
            logger.info(f"Deleted snapshot {key}" if deleted else f"No snapshot {key} to delete")
        except SQLAlchemyError as e:
            logger.error(f"Error deleting snapshot {key}: {e}")
            storage_errors.labels(operation_type="delete").inc()
            self.db.rollback()
