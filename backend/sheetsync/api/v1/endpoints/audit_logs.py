from datetime import datetime
from typing import List, Annotated, Optional
from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.orm import Session

from sheetsync.database import get_db
from sheetsync.models.audit_log import AuditLog
from sheetsync.schemas.audit import AuditLogInDB
from sheetsync.schemas.auth import User
from sheetsync.auth import get_current_active_user

router = APIRouter()


@router.get("/", response_model=List[AuditLogInDB])
async def read_audit_logs(
    skip: int = 0,
    limit: int = 100,
    action: Optional[str] = Query(None, description="Filter by specific action"),
    action_type: Optional[str] = Query(None, description="Filter by action type: 'access', 'sync', or 'all'"),
    entity_type: Optional[str] = Query(None, description="Filter by entity type, e.g. 'mapping'"),
    entity_id: Optional[int] = Query(None, description="Filter by entity ID"),
    start_date: Optional[str] = Query(None, description="Filter created_at >= YYYY-MM-DD"),
    end_date: Optional[str] = Query(None, description="Filter created_at <= YYYY-MM-DD"),
    user: Optional[str] = Query(None, description="Filter by username"),
    current_user: Annotated[User, Depends(get_current_active_user)] = None,
    db: Session = Depends(get_db)
):
    """Retrieve audit logs with optional filters, newest first."""
    query = db.query(AuditLog).order_by(AuditLog.created_at.desc(), AuditLog.id.desc())

    if action:
        query = query.filter(AuditLog.action == action)

    # Sync logs are actions starting with 'sync', everything else is access
    if action_type == 'access':
        query = query.filter(~AuditLog.action.like('sync%'))
    elif action_type == 'sync':
        query = query.filter(AuditLog.action.like('sync%'))

    if entity_type:
        query = query.filter(AuditLog.entity_type == entity_type)
    if entity_id is not None:
        query = query.filter(AuditLog.entity_id == entity_id)

    try:
        if start_date:
            query = query.filter(AuditLog.created_at >= datetime.fromisoformat(f"{start_date}T00:00:00"))
        if end_date:
            query = query.filter(AuditLog.created_at <= datetime.fromisoformat(f"{end_date}T23:59:59"))
    except ValueError:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Dates must use the YYYY-MM-DD format")

    if user:
        query = query.filter(AuditLog.user == user)

    return query.offset(skip).limit(limit).all()


@router.get("/{log_id}", response_model=AuditLogInDB)
async def read_audit_log(
    log_id: int,
    current_user: Annotated[User, Depends(get_current_active_user)] = None,
    db: Session = Depends(get_db)
):
    """Retrieve a single audit log by ID."""
    db_log = db.query(AuditLog).filter(AuditLog.id == log_id).first()
    if db_log is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Audit log not found")
    return db_log
