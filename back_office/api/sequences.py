"""
Document sequence endpoints.

GET shows where a counter stands without moving it; the number
it predicts may be taken by another request before yours. POST
allocates a number for documents issued outside this service,
such as a handwritten waybill.
"""

from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from back_office.api.deps import RequestContext, audit, get_context
from back_office.exceptions import BackOfficeError
from back_office.models.base import get_db, unit_of_work
from back_office.models.enums import AuditAction, DocType
from back_office.services.sequence_service import SequenceService, format_number

router = APIRouter(prefix="/sequences", tags=["Sequences"])


@router.get("/{doc_type}")
def peek_sequence(
    doc_type: DocType,
    year: int | None = Query(default=None, ge=2000, le=9999),
    ctx: RequestContext = Depends(get_context),
    db: Session = Depends(get_db),
):
    """Last number handed out for a document type, and a guess at the next."""
    year = year or datetime.utcnow().year
    current = SequenceService(db).current_value(ctx.branch_id, doc_type, year)
    return {
        "doc_type": doc_type.value,
        "branch_id": ctx.branch_id,
        "year": year,
        "current_value": current,
        "predicted_next": format_number(
            doc_type.prefix, year, current + 1, doc_type.pad
        ),
    }


@router.post("/{doc_type}", status_code=201)
def allocate_number(
    doc_type: DocType,
    ctx: RequestContext = Depends(get_context),
    db: Session = Depends(get_db),
):
    """Reserve the next number of a series. It is never handed out again."""
    try:
        with unit_of_work(db):
            number = SequenceService(db).next_number(ctx.branch_id, doc_type)
    except BackOfficeError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))

    audit(
        db, ctx, f"Allocated {number}", "DOCUMENT_SEQUENCE", number,
        action=AuditAction.CREATE, new_data={"doc_type": doc_type.value},
    )
    return {"doc_type": doc_type.value, "branch_id": ctx.branch_id, "number": number}
