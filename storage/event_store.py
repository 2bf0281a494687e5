"""Event store owning the user events of every date."""
import json
import logging
import threading
from typing import Any, Dict, List, Optional

from engine.errors import PersistenceError, PreconditionViolation
from engine.models import UserEvent, is_canonical_date_key, is_holiday

logger = logging.getLogger(__name__)

DEFAULT_BLOB_KEY = 'calendarEvents'


class EventStore:
    """Mapping from date key to the user events of that date.

    Buckets keep insertion order and are never left empty. The store is the
    only writer of user events; mutations stay in memory until save().
    """

    def __init__(self, blob_store, blob_key: str = DEFAULT_BLOB_KEY):
        """
        Initialize the event store.

        Args:
            blob_store: Backend with read(key) and write(key, data)
            blob_key: Name of the blob holding the serialized mapping
        """
        self.blob_store = blob_store
        self.blob_key = blob_key
        self._events: Dict[str, List[UserEvent]] = {}
        self._write_lock = threading.Lock()

    def load(self) -> Dict[str, List[UserEvent]]:
        """
        Replace the in-memory events with the persisted blob.

        A missing, unreadable or corrupt blob loads as an empty mapping.
        Malformed entries are skipped.

        Returns:
            Copy of the loaded mapping
        """
        self._events = self._read_blob()
        logger.info(
            f"Loaded {sum(len(v) for v in self._events.values())} events "
            f"in {len(self._events)} dates"
        )
        return self.as_dict()

    def save(self, mapping: Optional[Dict[str, List[UserEvent]]] = None) -> None:
        """
        Serialize and write the events.

        Args:
            mapping: Mapping to write, defaults to the in-memory events

        Raises:
            PersistenceError: if the backend rejects the write. The
                in-memory events are kept as they are.
        """
        source = self._events if mapping is None else mapping
        payload = json.dumps(
            {
                key: [event.to_dict() for event in bucket]
                for key, bucket in source.items()
                if bucket
            },
            ensure_ascii=False
        )

        with self._write_lock:
            try:
                self.blob_store.write(self.blob_key, payload)
            except Exception as e:
                logger.error(f"Error saving events to '{self.blob_key}': {e}")
                raise PersistenceError(f"Could not save events: {e}") from e

        logger.info(f"Saved {len(source)} dates to '{self.blob_key}'")

    def upsert(self, key: str, event: UserEvent) -> None:
        """
        Insert an event or replace the event with the same id in place.

        Args:
            key: Date key of the event
            event: User event, already validated

        Raises:
            PreconditionViolation: if event is a read-only holiday
        """
        if is_holiday(event) or event.read_only:
            raise PreconditionViolation(f"Holiday '{event.title}' is read-only")

        bucket = self._events.setdefault(key, [])
        for index, existing in enumerate(bucket):
            if existing.id == event.id:
                bucket[index] = event
                return
        bucket.append(event)

    def remove(self, key: str, event_id: str) -> bool:
        """
        Remove an event, dropping the date when it has no events left.

        Returns:
            True if an event was removed
        """
        bucket = self._events.get(key)
        if not bucket:
            return False

        keep = [event for event in bucket if event.id != event_id]
        if len(keep) == len(bucket):
            return False

        if keep:
            self._events[key] = keep
        else:
            del self._events[key]
        return True

    def get(self, key: str) -> List[UserEvent]:
        return list(self._events.get(key, []))

    def find(self, key: str, event_id: str) -> Optional[UserEvent]:
        for event in self._events.get(key, []):
            if event.id == event_id:
                return event
        return None

    def date_keys(self) -> List[str]:
        return list(self._events.keys())

    def as_dict(self) -> Dict[str, List[UserEvent]]:
        return {key: list(bucket) for key, bucket in self._events.items()}

    def __contains__(self, key: object) -> bool:
        return key in self._events

    def __len__(self) -> int:
        return len(self._events)

    def _read_blob(self) -> Dict[str, List[UserEvent]]:
        try:
            raw = self.blob_store.read(self.blob_key)
        except Exception as e:
            logger.warning(f"Error reading events from '{self.blob_key}': {e}")
            return {}

        if not raw:
            return {}

        try:
            decoded = json.loads(raw)
        except ValueError as e:
            logger.warning(f"Corrupt event blob '{self.blob_key}': {e}")
            return {}

        if not isinstance(decoded, dict):
            logger.warning(
                f"Event blob '{self.blob_key}' is not an object, ignoring it"
            )
            return {}

        events: Dict[str, List[UserEvent]] = {}
        for key, bucket in decoded.items():
            if not is_canonical_date_key(key) or not isinstance(bucket, list):
                logger.warning(f"Skipping malformed date entry: {key!r}")
                continue

            loaded = []
            for item in bucket:
                event = self._item_to_event(item)
                if event:
                    loaded.append(event)
            if loaded:
                events[key] = loaded
        return events

    def _item_to_event(self, item: Any) -> Optional[UserEvent]:
        """
        Convert a persisted item to a UserEvent.

        Returns:
            UserEvent or None if conversion fails
        """
        if not isinstance(item, dict):
            logger.warning(f"Skipping non-object event item: {item!r}")
            return None
        try:
            return UserEvent.from_dict(item)
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"Failed to convert item to UserEvent: {e}")
            return None
