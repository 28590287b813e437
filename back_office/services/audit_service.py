"""
Audit recorder.

Audit rows are written after the primary operation has
committed, in a transaction of their own. A failure to write
one is logged and swallowed: losing an audit row must never
undo or fail the operation it describes.
"""

import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from back_office.models.audit_log import AuditLog
from back_office.models.enums import AuditAction
from back_office.schemas.audit import AuditFilter

logger = logging.getLogger(__name__)


class AuditService:

    def __init__(self, db: Session):
        self.db = db

    def record(
        self,
        description: str,
        actor: str,
        branch_id: str | None,
        entity_type: str,
        entity_id,
        action: AuditAction = AuditAction.UPDATE,
        previous_data: dict | None = None,
        new_data: dict | None = None,
    ) -> None:
        """Write and commit one audit row. Never raises."""
        try:
            self.db.add(AuditLog(
                entity_type=entity_type,
                entity_id=None if entity_id is None else str(entity_id),
                action=action,
                description=description,
                actor=actor,
                branch_id=branch_id,
                previous_data=previous_data,
                new_data=new_data,
            ))
            self.db.commit()
        except Exception:
            self.db.rollback()
            logger.exception(
                "Failed to write audit record for %s %s", entity_type, entity_id
            )

    def list_logs(
        self, branch_id: str, filters: AuditFilter | None = None
    ) -> list[AuditLog]:
        """Activity log for a branch, newest first."""
        filters = filters or AuditFilter()
        query = select(AuditLog).where(AuditLog.branch_id == branch_id)
        if filters.entity_type is not None:
            query = query.where(AuditLog.entity_type == filters.entity_type)
        if filters.entity_id is not None:
            query = query.where(AuditLog.entity_id == filters.entity_id)
        if filters.action is not None:
            query = query.where(AuditLog.action == filters.action)
        if filters.actor is not None:
            query = query.where(AuditLog.actor == filters.actor)

        logs = self.db.execute(
            query.order_by(AuditLog.created_at.desc(), AuditLog.id.desc())
            .limit(filters.limit)
        ).scalars().all()
        return list(logs)
