"""
Shared endpoint dependencies.

Callers reach this API through a dispatch layer that has
already authenticated them. It forwards the resolved branch
and actor as headers; nothing here checks identity.
"""

from dataclasses import dataclass

from fastapi import Header
from sqlalchemy.orm import Session

from back_office.models.enums import AuditAction
from back_office.services.audit_service import AuditService


@dataclass
class RequestContext:
    branch_id: str
    actor: str = "system"


def get_context(
    x_branch_id: str = Header(..., min_length=1, max_length=36),
    x_actor_id: str = Header("system", min_length=1, max_length=100),
) -> RequestContext:
    return RequestContext(branch_id=x_branch_id, actor=x_actor_id)


def audit(
    db: Session,
    ctx: RequestContext,
    description: str,
    entity_type: str,
    entity_id,
    action: AuditAction = AuditAction.UPDATE,
    new_data: dict | None = None,
) -> None:
    """Record what a committed request did."""
    AuditService(db).record(
        description,
        ctx.actor,
        ctx.branch_id,
        entity_type,
        entity_id,
        action=action,
        new_data=new_data,
    )
