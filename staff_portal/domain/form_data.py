"""
Submission payload variants (``staff_portal.domain.form_data``).

``form_data`` on a submission is one of two shapes, discriminated by a
``kind`` key in its stored JSON:

* ``OnboardingFormData`` (``kind="upload"``) -- a completed file uploaded
  by the staff member.
* ``LegacyFormData`` (``kind="legacy"``) -- free-form string fields from
  the fill-in-the-form flow and from draft autosaves.

Rows written before the discriminator existed carry no ``kind``; they are
read back as legacy data unless they hold an ``uploaded_file_ref``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Mapping, Union

DEFAULT_ORIGINAL_FILENAME = "completed_document.pdf"


@dataclass(frozen=True)
class OnboardingFormData:
    uploaded_file_ref: str
    uploaded_at: datetime
    original_filename: str = DEFAULT_ORIGINAL_FILENAME

    kind = "upload"

    def to_json(self) -> dict[str, Any]:
        return {
            "kind": self.kind,
            "uploaded_file_ref": self.uploaded_file_ref,
            "uploaded_at": self.uploaded_at.isoformat(),
            "original_filename": self.original_filename,
        }


@dataclass(frozen=True)
class LegacyFormData:
    fields: Mapping[str, str] = field(default_factory=dict)

    kind = "legacy"

    def to_json(self) -> dict[str, Any]:
        return {"kind": self.kind, "fields": dict(self.fields)}


FormData = Union[OnboardingFormData, LegacyFormData]


def legacy_from_values(values: Mapping[str, Any] | None) -> LegacyFormData:
    """Coerce arbitrary form values to the string map the legacy variant holds."""
    if not values:
        return LegacyFormData()
    return LegacyFormData(
        fields={str(k): "" if v is None else str(v) for k, v in values.items()}
    )


def decode_form_data(raw: Mapping[str, Any] | None) -> FormData | None:
    """Inverse of ``to_json``; tolerant of undiscriminated legacy rows."""
    if raw is None:
        return None
    kind = raw.get("kind")
    if kind == OnboardingFormData.kind or (kind is None and "uploaded_file_ref" in raw):
        return OnboardingFormData(
            uploaded_file_ref=raw["uploaded_file_ref"],
            uploaded_at=datetime.fromisoformat(raw["uploaded_at"]),
            original_filename=raw.get("original_filename") or DEFAULT_ORIGINAL_FILENAME,
        )
    if kind == LegacyFormData.kind:
        return legacy_from_values(raw.get("fields"))
    return legacy_from_values({k: v for k, v in raw.items() if k != "kind"})
