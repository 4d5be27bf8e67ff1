"""
Persistence for Discover page state.

The pipeline never touches storage directly; it loads and saves a
PipelineState through a StateRepository. JsonFileStateRepository keeps the
four values under the fixed keys the web client used in localStorage, each
JSON-serialized, so a state file can be inspected or hand-edited.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional, Protocol

from pydantic import ValidationError

from .models import CreatorListMode, FilterCriteria, PipelineState, SortState

logger = logging.getLogger(__name__)

MODE_KEY = "discover_currentMode"
PAGE_KEY = "discover_currentPage"
FILTERS_KEY = "discover_currentFilters"
SORT_KEY = "discover_sortState"


class StateRepository(Protocol):
    def load(self) -> PipelineState:
        ...

    def save(self, state: PipelineState) -> None:
        ...


class InMemoryStateRepository:
    """Keeps state for the lifetime of the process."""

    def __init__(self, state: Optional[PipelineState] = None):
        self._state = state.model_copy(deep=True) if state else PipelineState()
        self.save_count = 0

    def load(self) -> PipelineState:
        return self._state.model_copy(deep=True)

    def save(self, state: PipelineState) -> None:
        self._state = state.model_copy(deep=True)
        self.save_count += 1


def _decode(entries: Dict[str, Any], key: str) -> Any:
    raw = entries.get(key)
    if not isinstance(raw, str):
        return None
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        logger.warning(f"Discarding corrupt {key} value")
        return None


def state_from_entries(entries: Dict[str, Any]) -> PipelineState:
    """
    Rebuild PipelineState from key/value entries.

    Each key falls back to its default independently when missing or corrupt.
    """
    state = PipelineState()

    mode = _decode(entries, MODE_KEY)
    if mode in (m.value for m in CreatorListMode):
        state.mode = mode

    page = _decode(entries, PAGE_KEY)
    if isinstance(page, int) and not isinstance(page, bool) and page >= 1:
        state.page = page

    filters = _decode(entries, FILTERS_KEY)
    if isinstance(filters, dict):
        try:
            state.filters = FilterCriteria.model_validate(filters)
        except ValidationError:
            logger.warning(f"Discarding invalid {FILTERS_KEY} value")

    sort = _decode(entries, SORT_KEY)
    if isinstance(sort, dict):
        try:
            state.sort = SortState.model_validate(sort)
        except ValidationError:
            logger.warning(f"Discarding invalid {SORT_KEY} value")

    return state


def state_to_entries(state: PipelineState) -> Dict[str, str]:
    return {
        MODE_KEY: json.dumps(state.mode),
        PAGE_KEY: json.dumps(state.page),
        FILTERS_KEY: json.dumps(state.filters.model_dump(exclude_none=True)),
        SORT_KEY: json.dumps(state.sort.model_dump()),
    }


class JsonFileStateRepository:
    """
    File-backed repository.

    Args:
        path: JSON file holding {key: json-string} entries
    """

    def __init__(self, path: Path):
        self.path = Path(path)

    def _read_entries(self) -> Dict[str, Any]:
        try:
            text = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}
        except OSError as e:
            logger.warning(f"Could not read {self.path}: {e}")
            return {}

        try:
            entries = json.loads(text)
        except json.JSONDecodeError:
            logger.warning(f"Ignoring corrupt state file {self.path}")
            return {}
        return entries if isinstance(entries, dict) else {}

    def load(self) -> PipelineState:
        return state_from_entries(self._read_entries())

    def save(self, state: PipelineState) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(json.dumps(state_to_entries(state), indent=2), encoding="utf-8")
        except OSError as e:
            logger.error(f"Failed to save discover state to {self.path}: {e}")
