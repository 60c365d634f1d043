"""
HRRecordService -- HR records issued to one staff member and their
acknowledgment.

Responsibility:
    Admins issue HR records (letters, reports) to a staff member; the staff
    member acknowledges each one with an uploaded copy and a signature.

Invariants enforced:
    - A record is visible to, and acknowledgeable by, its owner only.
      "Does not exist" and "not yours" are reported as the same error.
    - Acknowledgment is terminal (HR_ACKNOWLEDGMENT_LIFECYCLE).  The write
      is a compare-and-set on ``acknowledged_at IS NULL``.
    - Notifications are best effort.
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy.orm import Session

from staff_portal.domain.clock import Clock
from staff_portal.domain.dtos import HRRecordInfo
from staff_portal.domain.submission import (
    HR_ACKNOWLEDGMENT_LIFECYCLE,
    HR_RECORD_LABELS,
    HRRecordStatus,
    HRRecordType,
    humanize_token,
)
from staff_portal.exceptions import (
    InvalidStateError,
    NotFoundOrForbiddenError,
    ValidationError,
)
from staff_portal.logging_config import get_logger
from staff_portal.models.hr_record import HRRecord
from staff_portal.services import notification_service as templates
from staff_portal.services.base import BaseService
from staff_portal.services.notification_service import NotificationSink, NotificationType
from staff_portal.services.revalidation import Revalidator, ViewPath
from staff_portal.services.storage_gateway import StorageGateway
from staff_portal.services.user_directory import UserDirectory

logger = get_logger("services.hr_record")


class HRRecordService(BaseService):
    lifecycle = HR_ACKNOWLEDGMENT_LIFECYCLE

    def __init__(
        self,
        session: Session,
        notifications: NotificationSink,
        revalidator: Revalidator,
        clock: Clock | None = None,
    ) -> None:
        super().__init__(session, clock)
        self._gateway = StorageGateway(session)
        self._directory = UserDirectory(self._gateway)
        self._notifications = notifications
        self._revalidator = revalidator

    def create_record(
        self,
        staff_id: UUID,
        hr_subtype: HRRecordType | str,
        title: str | None = None,
        description: str | None = None,
        content: str | None = None,
        file_ref: str | None = None,
        created_by: UUID | None = None,
    ) -> HRRecordInfo:
        """Issue an HR record to ``staff_id`` and tell them about it."""
        try:
            record_type = HRRecordType(hr_subtype)
        except ValueError:
            raise ValidationError("hr_subtype", f"Unknown HR record type '{hr_subtype}'") from None
        self._directory.require(staff_id)

        row = self._gateway.insert(
            HRRecord,
            {
                "user_id": staff_id,
                "record_type": record_type.value,
                "title": title,
                "description": description,
                "content": content if content is not None else description,
                "file_ref": file_ref,
                "visibility": "private",
                "created_by": created_by,
                "created_at": self._clock.now(),
            },
        )
        logger.info(
            "hr_record_created",
            extra={"hr_record_id": str(row.id), "record_type": record_type.value},
        )

        title_text, message = templates.hr_record_added(HR_RECORD_LABELS[record_type])
        record_id = row.id
        self.best_effort(
            "notify_staff_of_hr_record",
            lambda: self._notifications.notify(
                staff_id, title_text, message, NotificationType.HR_RECORD,
                "hr_record", record_id,
            ),
        )
        self._revalidate()
        return row.to_dto()

    def acknowledge(
        self,
        record_id: UUID,
        user_id: UUID,
        uploaded_file_ref: str | None,
        signature_ref: str | None,
        notes: str | None = None,
    ) -> HRRecordInfo:
        row = self._gateway.get(HRRecord, record_id)
        if row is None or row.user_id != user_id:
            logger.warning(
                "hr_record_access_denied",
                extra={"hr_record_id": str(record_id), "user_id": str(user_id)},
            )
            raise NotFoundOrForbiddenError("HRRecord", str(record_id))

        if not uploaded_file_ref:
            raise ValidationError(
                "uploaded_file_ref", "Please upload the signed copy of this record",
            )
        if not signature_ref:
            raise ValidationError("signature_ref", "A signature is required")

        current = HRRecordStatus.ACKNOWLEDGED if row.acknowledged_at else HRRecordStatus.PENDING
        if not self.lifecycle.can(current, "acknowledge"):
            raise InvalidStateError(
                str(record_id), current.value, "This record has already been acknowledged",
            )

        now = self._clock.now()
        changed = self._gateway.update_where(
            HRRecord,
            {"id": record_id, "acknowledged_at": None},
            {
                "acknowledged_at": now,
                "acknowledgment_file_ref": uploaded_file_ref,
                "signature_ref": signature_ref,
                "acknowledgment_notes": notes,
                "updated_at": now,
            },
        )
        row = self._gateway.reload(HRRecord, {"id": record_id})
        if changed == 0:
            raise InvalidStateError(
                str(record_id),
                HRRecordStatus.ACKNOWLEDGED.value,
                "This record has already been acknowledged",
            )

        logger.info(
            "hr_record_acknowledged",
            extra={"hr_record_id": str(record_id), "user_id": str(user_id)},
        )
        self._notify_admins(user_id, row.record_type, record_id)
        self._revalidate()
        return row.to_dto()

    def list_for_staff(self, user_id: UUID) -> list[HRRecordInfo]:
        rows = self._gateway.find(HRRecord, {"user_id": user_id}, order_by=["-created_at"])
        return [row.to_dto() for row in rows]

    def list_all(self) -> list[HRRecordInfo]:
        rows = self._gateway.find(HRRecord, order_by=["-created_at"])
        return [row.to_dto() for row in rows]

    def _notify_admins(self, user_id: UUID, record_type: str, record_id: UUID) -> None:
        title, message = templates.hr_record_acknowledged(
            self._directory.display_name(user_id), humanize_token(record_type),
        )
        self.best_effort(
            "notify_admins_of_hr_acknowledgment",
            lambda: self._notifications.notify_many(
                self._directory.active_admin_ids(),
                title,
                message,
                NotificationType.HR_ACKNOWLEDGMENT,
                "hr_record",
                record_id,
            ),
        )

    def _revalidate(self) -> None:
        self.best_effort(
            "revalidate",
            lambda: self._revalidator.revalidate(
                ViewPath.STAFF_HR_RECORDS, ViewPath.ADMIN_SUBMISSIONS,
            ),
        )
