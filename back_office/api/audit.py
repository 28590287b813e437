"""
Activity log endpoint.
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from back_office.api.deps import RequestContext, get_context
from back_office.models.base import get_db
from back_office.models.enums import AuditAction
from back_office.schemas.audit import AuditFilter, AuditLogResponse
from back_office.services.audit_service import AuditService

router = APIRouter(prefix="/audit", tags=["Audit"])


@router.get("", response_model=list[AuditLogResponse])
def list_audit_logs(
    entity_type: str | None = None,
    entity_id: str | None = None,
    action: AuditAction | None = None,
    actor: str | None = None,
    limit: int = Query(default=100, ge=1, le=500),
    ctx: RequestContext = Depends(get_context),
    db: Session = Depends(get_db),
):
    """Everything that happened in the caller's branch, newest first."""
    filters = AuditFilter(
        entity_type=entity_type,
        entity_id=entity_id,
        action=action,
        actor=actor,
        limit=limit,
    )
    return AuditService(db).list_logs(ctx.branch_id, filters)
