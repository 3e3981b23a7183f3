from __future__ import annotations

import logging
import secrets
import threading
import time
from typing import Callable, Iterable, Mapping, Optional

from ..core.constants import PAGE_IDLE_TTL_SECONDS
from ..core.enums import PageKind
from ..core.exceptions import NotFoundError, ValidationError
from ..store.repository import RecordStore
from .context import PageContext
from .definition import PageDefinition

logger = logging.getLogger(__name__)


class PageRegistry:
    """Open page sessions keyed by an opaque token.

    A session lives from ``open`` until ``close``, or until it has gone
    ``idle_ttl`` seconds without being looked up; its unsaved buffer dies
    with it. A session in the middle of a save is never evicted.
    """

    def __init__(
        self,
        store: RecordStore,
        definitions: Iterable[PageDefinition],
        *,
        idle_ttl: Optional[float] = PAGE_IDLE_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._store = store
        self._definitions: dict[PageKind, PageDefinition] = {d.kind: d for d in definitions}
        self._pages: dict[str, PageContext] = {}
        self._touched: dict[str, float] = {}
        self._idle_ttl = idle_ttl
        self._clock = clock
        self._lock = threading.Lock()

    def _evict_idle(self, now: float) -> None:
        # Caller holds self._lock.
        if not self._idle_ttl:
            return
        for token, page in list(self._pages.items()):
            if page.saving or now - self._touched[token] <= self._idle_ttl:
                continue
            del self._pages[token]
            del self._touched[token]
            logger.info(
                "Evicted idle %s page %s for %s%s",
                page.kind.value,
                token,
                page.entity_id,
                " (unsaved changes dropped)" if page.is_dirty else "",
            )

    def definition(self, kind: str) -> PageDefinition:
        try:
            return self._definitions[PageKind(kind)]
        except ValueError:
            raise ValidationError(f"Unknown page kind {kind!r}") from None
        except KeyError:
            raise ValidationError(f"No page registered for {kind!r}") from None

    def _load_children(self, definition: PageDefinition, entity_id: str, names: Iterable[str]) -> dict[str, list]:
        children = {}
        for name in names:
            spec = definition.section(name)
            children[name] = self._store.query(spec.table, eq={spec.parent_key: entity_id}, order_by=spec.order_by)
        return children

    def open(self, kind: str, entity_id: str) -> PageContext:
        definition = self.definition(kind)
        record = self._store.get(definition.table, entity_id)
        if record is None:
            raise NotFoundError(f"{definition.kind.value.capitalize()} {entity_id} not found")

        children = self._load_children(definition, entity_id, definition.section_names)
        page = PageContext.open(
            token=secrets.token_urlsafe(16),
            definition=definition,
            record=record,
            children=children,
        )
        with self._lock:
            now = self._clock()
            self._evict_idle(now)
            self._pages[page.token] = page
            self._touched[page.token] = now
        logger.debug("Opened %s page %s for %s", kind, page.token, entity_id)
        return page

    def get(self, token: str) -> PageContext:
        with self._lock:
            now = self._clock()
            self._evict_idle(now)
            page = self._pages.get(token)
            if page is not None:
                self._touched[token] = now
        if page is None:
            raise NotFoundError("Page session not found or already closed")
        return page

    def close(self, token: str) -> bool:
        """Forget a session; returns whether unsaved changes were discarded."""
        with self._lock:
            page = self._pages.pop(token, None)
            self._touched.pop(token, None)
        if page is None:
            raise NotFoundError("Page session not found or already closed")
        discarded = page.is_dirty
        if discarded:
            logger.info("Discarded unsaved changes on %s %s", page.kind.value, page.entity_id)
        return discarded

    def sync(self, page: PageContext, names: Optional[Iterable[str]] = None) -> list[str]:
        """Re-fetch sections whose refresh counter moved since they were last loaded."""
        stale = list(names) if names is not None else page.stale_sections()
        if not stale:
            return []
        fresh: Mapping[str, list] = self._load_children(page.definition, page.entity_id, stale)
        for name, rows in fresh.items():
            page.children[name] = rows
            page.loaded_refresh[name] = page.refresh[name]
        return stale

    def __len__(self) -> int:
        with self._lock:
            return len(self._pages)
