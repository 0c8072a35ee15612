"""Full-text search activation and entity mapping.

Synopsis:
Decides whether indexing is active, writes its storage settings without
clobbering customized values, and derives which entity fields are indexed.
The indexing engine itself is external; ``IndexingListener`` only records
which rows changed so that engine can pick them up.

Glossary:
- Index base: Root directory holding one index per entity.
- Mapping source: Hook that tells the indexer which fields to index.
"""

from __future__ import annotations

import logging
from collections import deque
from typing import Iterable, Mapping

from sqlalchemy import inspect as sa_inspect

from ..config import AppSettings
from . import keys
from .helpers import is_search_enabled, qualified_name
from .properties import PersistenceConfiguration

logger = logging.getLogger(__name__)

DEFAULT_DIRECTORY_PROVIDER = "filesystem"
DEFAULT_INDEX_BASE = "{tmpdir}/appcore/indexes"
SEARCHABLE_ATTR = "__searchable__"


# --- SearchMappingFactory ---
# Purpose: Collect the indexed fields declared on mapped entities.
class SearchMappingFactory:
    """Build ``{entity name: indexed fields}`` from ``__searchable__`` declarations."""

    def build(self, entities: Mapping[str, type]) -> dict[str, tuple[str, ...]]:
        mapping: dict[str, tuple[str, ...]] = {}
        for name, entity in entities.items():
            fields = getattr(entity, SEARCHABLE_ATTR, None)
            if not fields:
                continue
            if isinstance(fields, str):
                fields = (fields,)
            mapping[name] = tuple(fields)
        return mapping


# --- IndexingListener ---
# Purpose: Queue changed searchable rows after each flush.
class IndexingListener:
    def __init__(self, mapping: Mapping[str, Iterable[str]], max_pending: int = 10000):
        self.mapping = {name: tuple(fields) for name, fields in mapping.items()}
        self.pending: deque[tuple[str, tuple]] = deque(maxlen=max_pending)

    def after_flush(self, session, _flush_context) -> None:
        for instance in list(session.new) + list(session.dirty) + list(session.deleted):
            name = type(instance).__name__
            if name not in self.mapping:
                continue
            # identity keys are assigned after this hook; read the primary key columns instead
            state = sa_inspect(instance)
            identity = tuple(state.mapper.primary_key_from_instance(instance))
            if all(part is not None for part in identity):
                self.pending.append((name, identity))

    def drain(self) -> list[tuple[str, tuple]]:
        items = list(self.pending)
        self.pending.clear()
        return items


# --- Apply search ---
# Purpose: Turn indexing on with set-if-absent defaults, or scrub it off.
def apply_search(settings: AppSettings, config: PersistenceConfiguration) -> None:
    if not is_search_enabled(settings):
        config[keys.SEARCH_AUTOREGISTER_LISTENERS] = "false"
        config.remove(keys.SEARCH_DIRECTORY_PROVIDER)
        config.remove(keys.SEARCH_INDEX_BASE)
        return

    if config.set_if_absent(keys.SEARCH_DIRECTORY_PROVIDER, DEFAULT_DIRECTORY_PROVIDER):
        logger.debug("Search directory provider defaulted to %s", DEFAULT_DIRECTORY_PROVIDER)
    if keys.SEARCH_INDEX_BASE not in config:
        config[keys.SEARCH_INDEX_BASE] = settings.get_path(keys.SEARCH_INDEX_BASE, DEFAULT_INDEX_BASE)
        logger.info("Search index base: %s", config[keys.SEARCH_INDEX_BASE])
    config[keys.SEARCH_MODEL_MAPPING] = qualified_name(SearchMappingFactory)
