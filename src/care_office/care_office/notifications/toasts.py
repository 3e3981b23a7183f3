from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from ..core.enums import Severity


@dataclass(frozen=True)
class Toast:
    title: str
    description: str = ""
    severity: Severity = Severity.INFO

    def as_dict(self) -> dict:
        return {"title": self.title, "description": self.description, "severity": self.severity.value}


class Notifier(Protocol):
    def success(self, title: str, description: str = "") -> None:
        raise NotImplementedError

    def error(self, title: str, description: str = "") -> None:
        raise NotImplementedError


class ToastCollector(Notifier):
    """Collects toasts raised while handling one request; the controller returns them."""

    def __init__(self):
        self.toasts: list[Toast] = []

    def success(self, title: str, description: str = "") -> None:
        self.toasts.append(Toast(title, description, Severity.SUCCESS))

    def error(self, title: str, description: str = "") -> None:
        self.toasts.append(Toast(title, description, Severity.ERROR))

    @property
    def errors(self) -> list[Toast]:
        return [t for t in self.toasts if t.severity == Severity.ERROR]
