from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .activity.logger import ActivityLogger
from .core.constants import PAGE_IDLE_TTL_SECONDS
from .database.connection import DBConfig, DatabaseConnection
from .houses.page import HOUSE_PAGE
from .pages.registry import PageRegistry
from .participants.page import PARTICIPANT_PAGE
from .requests.service import RequestService
from .roster.service import RosterService
from .saving.orchestrator import BatchSaveOrchestrator
from .staff.page import STAFF_PAGE
from .store.file_storage import FileStorage, LocalFileStorage
from .store.mysql_record_store import MySQLRecordStore
from .store.repository import RecordStore


@dataclass(frozen=True)
class Container:
    store: RecordStore
    storage: FileStorage

    activity: ActivityLogger
    pages: PageRegistry
    orchestrator: BatchSaveOrchestrator
    roster_service: RosterService
    request_service: RequestService


def wire(store: RecordStore, storage: FileStorage, *, page_idle_ttl: Optional[float] = PAGE_IDLE_TTL_SECONDS) -> Container:
    activity = ActivityLogger(store)
    return Container(
        store=store,
        storage=storage,
        activity=activity,
        pages=PageRegistry(store, (STAFF_PAGE, PARTICIPANT_PAGE, HOUSE_PAGE), idle_ttl=page_idle_ttl),
        orchestrator=BatchSaveOrchestrator(store, storage, activity),
        roster_service=RosterService(store, activity),
        request_service=RequestService(store, activity),
    )


def build_container(
    *,
    db_config: dict,
    storage_root: str | Path,
    public_url: str = "/files",
    page_idle_ttl: Optional[float] = PAGE_IDLE_TTL_SECONDS,
    store: Optional[RecordStore] = None,
) -> Container:
    if store is None:
        conn = DatabaseConnection.get_instance(DBConfig.from_dict(db_config))
        store = MySQLRecordStore(conn)
    return wire(store, LocalFileStorage(storage_root, public_base_url=public_url), page_idle_ttl=page_idle_ttl)
