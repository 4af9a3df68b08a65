from contextlib import contextmanager
from dataclasses import dataclass
from typing import Dict, Iterator, Optional
from app.schemas.entity import EntityType

@dataclass
class EntityState:
    loading: bool = False
    error: Optional[str] = None

class LoadTracker:
    """Per entity type loading flag and error string, independent of each other."""

    def __init__(self):
        self._states: Dict[EntityType, EntityState] = {t: EntityState() for t in EntityType}
        self._in_flight: Dict[EntityType, int] = {t: 0 for t in EntityType}

    def state(self, entity_type: EntityType) -> EntityState:
        current = self._states[entity_type]
        return EntityState(loading=current.loading, error=current.error)

    def is_loading(self, entity_type: EntityType) -> bool:
        return self._states[entity_type].loading

    def error(self, entity_type: EntityType) -> Optional[str]:
        return self._states[entity_type].error

    def set_error(self, entity_type: EntityType, message: str) -> None:
        self._states[entity_type].error = message

    def clear_error(self, entity_type: EntityType) -> None:
        self._states[entity_type].error = None

    def clear_all_errors(self) -> None:
        for state in self._states.values():
            state.error = None

    @contextmanager
    def tracking(self, entity_type: EntityType) -> Iterator[EntityState]:
        """
        Mark `entity_type` as loading for the duration of the block.
        Overlapping blocks are counted, so the flag drops only when the last one exits.
        """
        state = self._states[entity_type]
        self._in_flight[entity_type] += 1
        state.loading = True
        try:
            yield state
        finally:
            self._in_flight[entity_type] = max(0, self._in_flight[entity_type] - 1)
            state.loading = self._in_flight[entity_type] > 0

    def reset(self) -> None:
        for entity_type, state in self._states.items():
            state.loading = False
            state.error = None
            self._in_flight[entity_type] = 0
