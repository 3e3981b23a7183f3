from __future__ import annotations

import logging
from dataclasses import dataclass, fields
from typing import Any, Optional

import mysql.connector

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DBConfig:
    host: str
    port: int
    user: str
    password: str
    database: str
    charset: str = "utf8mb4"
    # Audit timestamps are written in the office's local time.
    time_zone: Optional[str] = None
    connect_timeout: int = 10

    @classmethod
    def from_dict(cls, db_config: dict) -> "DBConfig":
        known = {f.name for f in fields(cls)}
        extra = sorted(set(db_config) - known)
        if extra:
            logger.warning("Ignoring unknown DB_CONFIG key(s): %s", ", ".join(extra))
        return cls(
            host=str(db_config["host"]),
            port=int(db_config.get("port", 3306)),
            user=str(db_config["user"]),
            password=str(db_config.get("password") or ""),
            database=str(db_config["database"]),
            charset=str(db_config.get("charset", "utf8mb4")),
            time_zone=db_config.get("time_zone") or None,
            connect_timeout=int(db_config.get("connect_timeout", 10)),
        )

    def connect_kwargs(self) -> dict[str, Any]:
        kwargs: dict[str, Any] = {
            "host": self.host,
            "port": self.port,
            "user": self.user,
            "password": self.password,
            "database": self.database,
            "charset": self.charset,
            "connection_timeout": self.connect_timeout,
        }
        if self.time_zone:
            kwargs["time_zone"] = self.time_zone
        return kwargs


class DatabaseConnection:
    """Process-wide connection factory for the record store.

    A short-lived connection is opened per store call, so a batch save
    commits item by item (no surrounding transaction).
    """

    _instance: Optional["DatabaseConnection"] = None

    def __init__(self, config: DBConfig):
        self.config = config

    @classmethod
    def get_instance(cls, config: DBConfig) -> "DatabaseConnection":
        if cls._instance is None or cls._instance.config != config:
            cls._instance = DatabaseConnection(config)
        return cls._instance

    def connect(self):
        return mysql.connector.connect(**self.config.connect_kwargs())
