"""SQLite-backed store for trained models.

Each saved model becomes one row keyed by an id derived from its creation
timestamp (``model_<ISO-8601 UTC>``). The model itself is stored as JSON
text next to its accuracy metadata.

The store is append-only: saving never overwrites an existing id, and
deleting an unknown id is a successful no-op. A save whose timestamp id is
already taken retries with a later timestamp. There is no locking;
one process owns the database file.
"""

import json
import logging
import math
import sqlite3
from contextlib import closing, contextmanager
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Union

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

DEFAULT_DESCRIPTION = "Real Estate Price Prediction Model"

# Attempts to find a free timestamp id when saves land in the same clock tick
SAVE_ATTEMPTS = 5


class StorageError(Exception):
    """The store is unavailable or a model could not be (de)serialized."""


class StoredModel(BaseModel):
    """A persisted model together with its metadata."""

    id: str = Field(..., description="model_<creation timestamp>")
    name: str = Field(..., description="Human-readable model name")
    model: Any = Field(..., description="Deserialized model payload")
    features: List[str] = Field(default_factory=list, description="Feature ordering of the model")
    accuracy: Optional[float] = Field(default=None, description="R² on the training data (None if undefined)")
    rmse: Optional[float] = Field(default=None, description="Root-mean-square error on the training data")
    created: datetime = Field(..., description="Creation time (UTC)")
    description: str = Field(default=DEFAULT_DESCRIPTION)


def _finite_or_none(value: Any) -> Optional[float]:
    if value is None:
        return None
    value = float(value)
    return None if math.isnan(value) or math.isinf(value) else value


class ModelStore:
    """SQLite store of trained models.

    Example:
        store = ModelStore(Path("~/.price_estimator/models.db"))

        record = store.save(model.to_dict(), {"accuracy": 0.91, "rmse": 24.3})
        same = store.get_by_id(record.id)
        latest = store.get_most_recent()
        store.delete(record.id)
    """

    def __init__(self, db_path: Union[str, Path]):
        """Open (and create if needed) the store.

        Args:
            db_path: SQLite database file; parent directories are created
        """
        self.db_path = Path(db_path).expanduser()
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        """Connection that commits (or rolls back) and is always closed."""
        try:
            conn = sqlite3.connect(self.db_path)
        except sqlite3.Error as e:
            logger.error("Cannot open model store %s: %s", self.db_path, e)
            raise StorageError(f"Model store unavailable: {e}") from e

        with closing(conn), conn:
            yield conn

    def _init_db(self) -> None:
        """Initialize the database schema."""
        try:
            with self._connect() as conn:
                conn.execute("""
                    CREATE TABLE IF NOT EXISTS trained_models (
                        id TEXT PRIMARY KEY,
                        name TEXT NOT NULL,
                        model TEXT NOT NULL,
                        features JSON NOT NULL,
                        accuracy REAL,
                        rmse REAL,
                        created TIMESTAMP NOT NULL,
                        description TEXT
                    )
                """)
                conn.commit()
        except sqlite3.Error as e:
            logger.error("Cannot initialize model store %s: %s", self.db_path, e)
            raise StorageError(f"Model store unavailable: {e}") from e

    def _row_to_record(self, row: sqlite3.Row) -> StoredModel:
        try:
            model = json.loads(row["model"])
            features = json.loads(row["features"])
        except json.JSONDecodeError as e:
            raise StorageError(f"Failed to parse model data for {row['id']}") from e

        return StoredModel(
            id=row["id"],
            name=row["name"],
            model=model,
            features=features,
            accuracy=row["accuracy"],
            rmse=row["rmse"],
            created=datetime.fromisoformat(row["created"]),
            description=row["description"] or DEFAULT_DESCRIPTION,
        )

    def save(self, model: Any, metadata: Optional[Dict[str, Any]] = None) -> StoredModel:
        """Serialize and store a model.

        Args:
            model: JSON-serializable payload, or an object with to_dict()
            metadata: Optional name, features, accuracy, rmse, description

        Returns:
            The stored record

        Raises:
            StorageError: serialization failed or the row could not be written
        """
        metadata = metadata or {}
        if hasattr(model, "to_dict"):
            model = model.to_dict()

        try:
            serialized = json.dumps(model, allow_nan=False)
        except (TypeError, ValueError) as e:
            logger.error("Model is not serializable: %s", e)
            raise StorageError(f"Model is not serializable: {e}") from e

        created = datetime.now(timezone.utc)
        for attempt in range(1, SAVE_ATTEMPTS + 1):
            record = StoredModel(
                id=f"model_{created.isoformat()}",
                name=metadata.get("name") or f"Model {created.strftime('%Y-%m-%d %H:%M:%S')}",
                model=json.loads(serialized),
                features=list(metadata.get("features") or []),
                accuracy=_finite_or_none(metadata.get("accuracy")),
                rmse=_finite_or_none(metadata.get("rmse")),
                created=created,
                description=metadata.get("description") or DEFAULT_DESCRIPTION,
            )

            try:
                self._insert(record, serialized)
                break
            except sqlite3.IntegrityError as e:
                if attempt == SAVE_ATTEMPTS:
                    logger.error("Error saving model %s: %s", record.id, e)
                    raise StorageError(f"Could not save model: {e}") from e
                logger.debug("Model id %s taken, retrying", record.id)
                created = max(datetime.now(timezone.utc), created + timedelta(microseconds=1))
            except sqlite3.Error as e:
                logger.error("Error saving model %s: %s", record.id, e)
                raise StorageError(f"Could not save model: {e}") from e

        logger.info("Saved model %s (%s)", record.id, record.name)
        return record

    def _insert(self, record: StoredModel, serialized: str) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO trained_models
                (id, name, model, features, accuracy, rmse, created, description)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    record.id,
                    record.name,
                    serialized,
                    json.dumps(record.features),
                    record.accuracy,
                    record.rmse,
                    record.created.isoformat(),
                    record.description,
                ),
            )

    def _query(self, sql: str, params: tuple = ()) -> List[sqlite3.Row]:
        try:
            with self._connect() as conn:
                conn.row_factory = sqlite3.Row
                return conn.execute(sql, params).fetchall()
        except sqlite3.Error as e:
            logger.error("Error reading model store: %s", e)
            raise StorageError(f"Could not read model store: {e}") from e

    def get_all(self) -> List[StoredModel]:
        """All stored models, in no particular order."""
        rows = self._query("SELECT * FROM trained_models")
        return [self._row_to_record(row) for row in rows]

    def get_by_id(self, model_id: str) -> Optional[StoredModel]:
        """The model with this id, or None if it does not exist."""
        rows = self._query("SELECT * FROM trained_models WHERE id = ?", (model_id,))
        return self._row_to_record(rows[0]) if rows else None

    def get_most_recent(self) -> Optional[StoredModel]:
        """The most recently created model, or None if the store is empty."""
        models = self.get_all()
        if not models:
            return None
        return max(models, key=lambda record: record.created)

    def delete(self, model_id: str) -> None:
        """Delete a model. Unknown ids are ignored."""
        try:
            with self._connect() as conn:
                deleted = conn.execute("DELETE FROM trained_models WHERE id = ?", (model_id,)).rowcount
        except sqlite3.Error as e:
            logger.error("Error deleting model %s: %s", model_id, e)
            raise StorageError(f"Could not delete model: {e}") from e

        if deleted:
            logger.info("Deleted model %s", model_id)
