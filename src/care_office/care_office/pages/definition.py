from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, Optional

from ..common.datetime_utils import to_iso
from ..common.validators import to_number
from ..core.enums import EntityType, PageKind
from ..saving.sections import SLICE_ORDER, SectionSpec
from ..saving.validation import FieldFormat, RequiredWhen


@dataclass(frozen=True)
class PhotoSupport:
    bucket: str
    folder: str = "profile"
    column: str = "photo_url"


@dataclass(frozen=True)
class PageDefinition:
    """Static description of one detail page: its main record and its sections."""

    kind: PageKind
    table: str
    entity_type: EntityType
    form_fields: tuple[str, ...]
    sections: tuple[SectionSpec, ...] = ()
    rules: tuple[RequiredWhen, ...] = ()
    formats: tuple[FieldFormat, ...] = ()
    boolean_fields: frozenset[str] = field(default_factory=frozenset)
    number_fields: frozenset[str] = field(default_factory=frozenset)
    photo: Optional[PhotoSupport] = None
    display_field: str = "name"
    success_message: str = "Changes saved"

    def section(self, name: str) -> SectionSpec:
        for spec in self.sections:
            if spec.name == name:
                return spec
        raise KeyError(name)

    @property
    def section_names(self) -> tuple[str, ...]:
        return tuple(s.name for s in self.sections)

    def ordered_sections(self) -> list[SectionSpec]:
        rank = {name: i for i, name in enumerate(SLICE_ORDER)}
        return sorted(self.sections, key=lambda s: rank.get(s.name, len(rank)))

    def form_from_record(self, record: Mapping[str, Any]) -> dict:
        """Editable form values: empty text fields become ``''``, flags default to ``False``."""
        form = {}
        for name in self.form_fields:
            value = record.get(name)
            if name in self.boolean_fields:
                form[name] = bool(value)
            elif name in self.number_fields:
                form[name] = "" if value is None else to_number(value)
            else:
                form[name] = "" if value is None else to_iso(value)
        return form

    def normalize_form(self, form: Mapping[str, Any]) -> dict:
        """Form values as they are written: ``''`` becomes ``None``, unknown keys are dropped."""
        out = {}
        for name in self.form_fields:
            if name not in form:
                continue
            value = form[name]
            out[name] = None if value == "" else value
        return out

    def coerce(self, values: Mapping[str, Any]) -> dict:
        """Numeric text in number fields becomes a number; other values pass through."""
        return {k: to_number(v) if k in self.number_fields else v for k, v in values.items()}
