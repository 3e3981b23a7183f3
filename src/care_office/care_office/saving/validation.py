from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Iterable, Mapping

from ..common.validators import ValidationResult, required_when
from ..core.enums import RecordStatus
from ..core.exceptions import FieldValidationError
from ..staging.changeset import PendingChangeSet
from .sections import SectionSpec

Predicate = Callable[[Mapping[str, Any]], bool]


def status_in(*statuses: RecordStatus) -> Predicate:
    values = {s.value for s in statuses}
    return lambda record: record.get("status") in values


def truthy(field: str) -> Predicate:
    return lambda record: bool(record.get(field))


@dataclass(frozen=True)
class RequiredWhen:
    """``field`` must be filled while ``when(post_change_record)`` holds."""

    field: str
    label: str
    when: Predicate
    message: str = ""
    description: str = ""

    def check(self, record: Mapping[str, Any]) -> None:
        result = required_when(record.get(self.field), self.when(record), self.label)
        if not result.is_valid:
            raise FieldValidationError(self.field, self.message or result.error, self.description)


def post_change(persisted: Mapping[str, Any], changes: Mapping[str, Any]) -> dict:
    """The record as it would read after ``changes`` are applied."""
    return {**persisted, **changes}


def validate_required_when(rules: Iterable[RequiredWhen], persisted: Mapping[str, Any], changes: Mapping[str, Any]) -> None:
    record = post_change(persisted, changes)
    for rule in rules:
        rule.check(record)


@dataclass(frozen=True)
class FieldFormat:
    """Value check applied to ``field`` whenever a save changes it."""

    field: str
    check: Callable[[Any], ValidationResult]

    def run(self, changes: Mapping[str, Any]) -> None:
        if self.field not in changes:
            return
        result = self.check(changes[self.field])
        if not result.is_valid:
            raise FieldValidationError(self.field, result.error)


def validate_formats(formats: Iterable[FieldFormat], changes: Mapping[str, Any]) -> None:
    for f in formats:
        f.run(changes)


def check_draft_references(spec: SectionSpec, data: Mapping[str, Any], pending: PendingChangeSet) -> None:
    """Temp ids in ``data`` must name a draft still staged in the referenced section."""
    for f, temp_id in spec.draft_references(data).items():
        target = pending.slice(spec.references[f])
        if not any(d.temp_id == temp_id for d in target.to_add):
            label = f.replace("_", " ").capitalize()
            raise FieldValidationError(
                f,
                f"{label} no longer exists",
                f"The item this {spec.noun} belongs to was removed before it was saved.",
            )


def validate_references(sections: Iterable[SectionSpec], pending: PendingChangeSet) -> None:
    for spec in sections:
        if not spec.references:
            continue
        staged = pending.slice(spec.name)
        for data in [d.data for d in staged.to_add] + [p.fields for p in staged.to_update]:
            check_draft_references(spec, data, pending)
