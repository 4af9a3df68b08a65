"""Unified entity repository.

One in-process store for every domain collection. Pages and routers talk to
it through generic operations keyed by `EntityType`:

    repo.add(EntityType.CUSTOMERS, {"name": "Acme"})
    repo.search(EntityType.CUSTOMERS, "acme", ["name", "email"])
    await repo.load_all()

Writes are committed in memory first and persisted afterwards (write-behind).
A failed durable write is recorded in the type's error slot and in
`last_persist_error`; the in-memory change is never rolled back. No operation
raises on storage or format faults.
"""

import asyncio
import copy
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Set, Tuple

from pydantic import ValidationError
from starlette.concurrency import run_in_threadpool

from app.core.config import Settings
from app.core.exceptions import PersistenceReadError
from app.core.filtering import filter_entities
from app.core.search import search_entities
from app.core.sequence import next_sequence_number
from app.core.tracker import EntityState, LoadTracker
from app.db.persistence import PersistenceAdapter
from app.db.storage import InMemoryStorage, JsonFileStorage, KeyValueStorage
from app.schemas.entity import CODE_FIELDS, NUMBER_PREFIXES, PERSISTED_TYPES, Entity, EntityType

logger = logging.getLogger(__name__)

Collection = Tuple[Dict[str, Any], ...]

def format_timestamp(moment: datetime) -> str:
    return moment.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")

def utc_now() -> str:
    return format_timestamp(datetime.now(timezone.utc))

def parse_timestamp(value: Any) -> Optional[datetime]:
    """Aware datetime for an ISO-8601 string; None for anything else."""
    if not isinstance(value, str):
        return None
    try:
        moment = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment

@dataclass(frozen=True)
class ChangeEvent:
    entity_type: EntityType
    action: str  # add | update | remove | load | reset
    entity: Optional[Dict[str, Any]] = None

Subscriber = Callable[[ChangeEvent], None]

class EntityRepository:
    def __init__(
        self,
        adapter: PersistenceAdapter,
        *,
        auto_persist: bool = True,
        sequence_separator: str = "-",
        sequence_width: int = 4,
        clock: Callable[[], str] = utc_now,
    ):
        self._adapter = adapter
        self.auto_persist = auto_persist
        self.sequence_separator = sequence_separator
        self.sequence_width = sequence_width
        self._clock = clock

        self._collections: Dict[EntityType, Collection] = {t: () for t in EntityType}
        self._tracker = LoadTracker()
        self._persist_errors: Dict[EntityType, str] = {}
        self._dirty: Set[EntityType] = set()
        # Types whose last load failed: their durable copy is only replaced by an explicit flush().
        self._write_guarded: Set[EntityType] = set()
        self._subscribers: Dict[EntityType, List[Subscriber]] = {t: [] for t in EntityType}
        self._last_stamp: Optional[str] = None

        # Transient UI state, never persisted.
        self._search_term = ""
        self._filters: Dict[str, Any] = {}

    # ------------------------------------------------------------------
    # Reads
    #
    # Callers get deep copies; editing one never touches the store.
    # ------------------------------------------------------------------

    def all(self, entity_type: EntityType) -> Collection:
        return copy.deepcopy(self._collections[entity_type])

    def get(self, entity_type: EntityType, entity_id: str) -> Optional[Dict[str, Any]]:
        found = next((e for e in self._collections[entity_type] if e.get("id") == entity_id), None)
        return copy.deepcopy(found)

    def search(self, entity_type: EntityType, term: str, fields: Iterable[str]) -> Collection:
        return copy.deepcopy(search_entities(self._collections[entity_type], term, fields))

    def filter(self, entity_type: EntityType, filters: Mapping[str, Any]) -> Collection:
        return copy.deepcopy(filter_entities(self._collections[entity_type], filters))

    def generate_number(
        self,
        entity_type: EntityType,
        prefix: Optional[str] = None,
        field: Optional[str] = None,
    ) -> str:
        return next_sequence_number(
            self._collections[entity_type],
            NUMBER_PREFIXES[entity_type] if prefix is None else prefix,
            field or CODE_FIELDS[entity_type],
            separator=self.sequence_separator,
            width=self.sequence_width,
        )

    # ------------------------------------------------------------------
    # Loading / error readouts
    # ------------------------------------------------------------------

    def state(self, entity_type: EntityType) -> EntityState:
        return self._tracker.state(entity_type)

    def is_loading(self, entity_type: EntityType) -> bool:
        return self._tracker.is_loading(entity_type)

    def error(self, entity_type: EntityType) -> Optional[str]:
        return self._tracker.error(entity_type)

    def last_persist_error(self, entity_type: EntityType) -> Optional[str]:
        return self._persist_errors.get(entity_type)

    def record_error(self, entity_type: EntityType, message: str) -> None:
        self._tracker.set_error(entity_type, message)

    def clear_error(self, entity_type: EntityType) -> None:
        self._tracker.clear_error(entity_type)

    def clear_all_errors(self) -> None:
        self._tracker.clear_all_errors()

    # ------------------------------------------------------------------
    # Transient search / filter state
    # ------------------------------------------------------------------

    @property
    def search_term(self) -> str:
        return self._search_term

    @property
    def filters(self) -> Dict[str, Any]:
        return dict(self._filters)

    def set_search_term(self, term: str) -> None:
        self._search_term = term

    def update_filters(self, filters: Mapping[str, Any]) -> None:
        self._filters = {**self._filters, **filters}

    # ------------------------------------------------------------------
    # CRUD
    # ------------------------------------------------------------------

    def add(self, entity_type: EntityType, data: Mapping[str, Any]) -> Dict[str, Any]:
        """
        Append a new entity. A caller-supplied id is kept (as a string), even
        when another entity of the same type already uses it.
        """
        now = self._stamp()
        entity = {
            **copy.deepcopy(dict(data)),
            "id": str(data["id"]) if data.get("id") else str(uuid.uuid4()),
            "createdAt": now,
            "updatedAt": now,
        }
        self._commit(entity_type, self._collections[entity_type] + (entity,))
        self._notify(ChangeEvent(entity_type, "add", copy.deepcopy(entity)))
        return copy.deepcopy(entity)

    def update(self, entity_type: EntityType, entity_id: str, partial: Mapping[str, Any]) -> Optional[Dict[str, Any]]:
        """Shallow-merge `partial` into the first entity with `entity_id`. Unknown ids are a no-op."""
        collection = self._collections[entity_type]
        index = next((i for i, e in enumerate(collection) if e.get("id") == entity_id), None)
        if index is None:
            return None

        current = collection[index]
        changes = {k: v for k, v in copy.deepcopy(dict(partial)).items() if k not in ("id", "createdAt")}
        updated = {**current, **changes, "updatedAt": self._stamp(after=current.get("updatedAt"))}
        self._commit(entity_type, collection[:index] + (updated,) + collection[index + 1:])
        self._notify(ChangeEvent(entity_type, "update", copy.deepcopy(updated)))
        return copy.deepcopy(updated)

    def remove(self, entity_type: EntityType, entity_id: str) -> bool:
        # Always True: callers cannot tell "removed" from "nothing to remove".
        collection = self._collections[entity_type]
        removed = [e for e in collection if e.get("id") == entity_id]
        self._commit(entity_type, tuple(e for e in collection if e.get("id") != entity_id))
        if removed:
            self._notify(ChangeEvent(entity_type, "remove", copy.deepcopy(removed[0])))
        return True

    def _stamp(self, after: Optional[str] = None) -> str:
        """
        Clock reading that is strictly later than every stamp issued so far
        and than `after`, so updatedAt always advances even when the wall
        clock repeats a millisecond or steps backwards.
        """
        now = self._clock()
        moment = parse_timestamp(now)
        for floor in (parse_timestamp(self._last_stamp), parse_timestamp(after)):
            if moment is not None and floor is not None and moment <= floor:
                moment = floor + timedelta(milliseconds=1)
                now = format_timestamp(moment)
        self._last_stamp = now
        return now

    def _commit(self, entity_type: EntityType, collection: Collection) -> None:
        self._collections[entity_type] = collection
        self._tracker.clear_error(entity_type)
        self._dirty.add(entity_type)
        if not self.auto_persist:
            return
        if entity_type in self._write_guarded:
            message = (
                f"Stored '{entity_type.value}' was not loaded cleanly; "
                "it is kept until flush() replaces it"
            )
            logger.warning(message)
            self._tracker.set_error(entity_type, message)
            return
        self._persist(entity_type)

    # ------------------------------------------------------------------
    # Durability
    # ------------------------------------------------------------------

    def _persist(self, entity_type: EntityType) -> bool:
        message = self._adapter.save(entity_type.value, list(self._collections[entity_type]))
        if message:
            self._persist_errors[entity_type] = message
            self._tracker.set_error(entity_type, message)
            return False
        self._persist_errors.pop(entity_type, None)
        self._dirty.discard(entity_type)
        self._write_guarded.discard(entity_type)
        return True

    def flush(self, types: Optional[Iterable[EntityType]] = None) -> bool:
        """
        Persist the given types (default: every persisted collection). True when all writes succeeded.

        This is also the only way to overwrite a stored collection whose last
        load failed; automatic write-behind leaves such a collection alone.
        """
        targets = PERSISTED_TYPES if types is None else tuple(types)
        results = [self._persist(t) for t in targets]
        return all(results)

    @property
    def dirty_types(self) -> Set[EntityType]:
        return set(self._dirty)

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def _validate_records(self, key: str, records: Any) -> Tuple[Collection, int]:
        """
        Objects are kept as stored, including ones that fail `Entity`
        validation (logged only). Non-objects cannot be held and are dropped;
        the count of dropped records is returned alongside the collection.
        """
        if not isinstance(records, list):
            raise PersistenceReadError(key, f"expected a list, got {type(records).__name__}")

        kept = []
        dropped = 0
        for index, record in enumerate(records):
            if not isinstance(record, dict):
                dropped += 1
                continue
            try:
                Entity.model_validate(record)
            except ValidationError as e:
                logger.warning(f"{key}[{index}] loaded as is despite {e.error_count()} validation errors")
            kept.append(record)
        return tuple(kept), dropped

    async def load(self, entity_type: EntityType) -> Collection:
        """
        Replace the collection with what durable storage holds.

        Unreadable data, or records that are not objects, leave an error
        string for the type and put the stored copy under write protection
        until `flush()`. Overlapping loads of one type are not fenced:
        whichever resolves last wins.
        """
        key = entity_type.value
        with self._tracker.tracking(entity_type):
            try:
                records = await run_in_threadpool(self._adapter.read, key, [])
                collection, dropped = self._validate_records(key, records)
            except PersistenceReadError as e:
                logger.warning(f"Load failed for {key}: {e.message}")
                collection = ()
                self._tracker.set_error(entity_type, e.message)
                self._write_guarded.add(entity_type)
            else:
                if dropped:
                    message = f"Skipped {dropped} stored {key} records that are not objects"
                    logger.warning(message)
                    self._tracker.set_error(entity_type, message)
                    self._write_guarded.add(entity_type)
                else:
                    self._tracker.clear_error(entity_type)
                    self._write_guarded.discard(entity_type)
                logger.info(f"Loaded {len(collection)} {key}")
            self._collections[entity_type] = collection
            self._dirty.discard(entity_type)

        self._notify(ChangeEvent(entity_type, "load"))
        return copy.deepcopy(collection)

    async def load_all(self) -> bool:
        """Load every entity type concurrently. One type failing never stops the others."""
        types = list(EntityType)
        results = await asyncio.gather(*(self.load(t) for t in types), return_exceptions=True)

        ok = True
        for entity_type, result in zip(types, results):
            if isinstance(result, Exception):
                logger.error(f"Unexpected failure loading {entity_type.value}: {result}")
                self._tracker.set_error(entity_type, str(result))
            if self._tracker.error(entity_type):
                ok = False
        return ok

    def reset(self) -> None:
        """Empty every collection and all transient state. Nothing is written to storage."""
        self._collections = {t: () for t in EntityType}
        self._tracker.reset()
        self._persist_errors.clear()
        self._dirty.clear()
        self._search_term = ""
        self._filters = {}
        for entity_type in EntityType:
            self._notify(ChangeEvent(entity_type, "reset"))

    # ------------------------------------------------------------------
    # Subscriptions
    # ------------------------------------------------------------------

    def subscribe(self, entity_type: EntityType, callback: Subscriber) -> Callable[[], None]:
        """Call `callback` after every committed change to `entity_type`. Returns an unsubscribe function."""
        self._subscribers[entity_type].append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers[entity_type]:
                self._subscribers[entity_type].remove(callback)

        return unsubscribe

    def _notify(self, event: ChangeEvent) -> None:
        for callback in list(self._subscribers[event.entity_type]):
            try:
                callback(event)
            except Exception:
                logger.exception(f"Subscriber failed on {event.entity_type.value} {event.action}")

def build_storage(settings: Settings) -> KeyValueStorage:
    if settings.STORAGE_BACKEND == "memory":
        return InMemoryStorage()
    if settings.STORAGE_BACKEND == "json":
        return JsonFileStorage(settings.STORAGE_DIR)
    raise ValueError(f"Unknown STORAGE_BACKEND '{settings.STORAGE_BACKEND}'")

def build_repository(settings: Settings, storage: Optional[KeyValueStorage] = None) -> EntityRepository:
    return EntityRepository(
        PersistenceAdapter(storage or build_storage(settings)),
        auto_persist=settings.AUTO_PERSIST,
        sequence_separator=settings.SEQUENCE_SEPARATOR,
        sequence_width=settings.SEQUENCE_WIDTH,
    )
