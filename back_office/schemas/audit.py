"""
Pydantic schemas for the activity log.
"""

from datetime import datetime

from pydantic import BaseModel, Field

from back_office.models.enums import AuditAction


class AuditFilter(BaseModel):
    entity_type: str | None = None
    entity_id: str | None = None
    action: AuditAction | None = None
    actor: str | None = None
    limit: int = Field(default=100, ge=1, le=500)


class AuditLogResponse(BaseModel):
    id: int
    entity_type: str
    entity_id: str
    action: AuditAction
    description: str
    actor: str
    branch_id: str | None
    previous_data: dict | None
    new_data: dict | None
    created_at: datetime

    model_config = {"from_attributes": True}
