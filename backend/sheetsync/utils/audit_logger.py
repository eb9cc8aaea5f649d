"""Audit logging helper for consistent audit trail creation."""

from typing import Optional, Dict, Any
from fastapi import Request
from sqlalchemy.orm import Session

from sheetsync.models.audit_log import AuditLog


def get_client_ip(request: Request) -> str:
    """
    Client IP, honouring reverse proxy headers.

    X-Forwarded-For (first entry) wins over X-Real-IP, which wins over the socket peer.
    Only trustworthy when the proxy strips client-supplied copies of these headers.
    """
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        client_ip = forwarded_for.split(",")[0].strip()
        if client_ip:
            return client_ip

    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip.strip()

    if request.client and request.client.host:
        return request.client.host
    return "unknown"


def create_audit_log(
    db: Session,
    request: Optional[Request],
    action: str,
    entity_type: Optional[str] = None,
    entity_id: Optional[int] = None,
    user: Optional[str] = None,
    details: Optional[Dict[str, Any]] = None
) -> AuditLog:
    """
    Create an audit log entry.

    Args:
        db: Database session
        request: Incoming request, used for IP and user agent (None for background actions)
        action: Action performed (e.g. 'mapping_created', 'sync_triggered')
        entity_type: Type of entity affected (e.g. 'mapping', 'sync_job')
        entity_id: ID of affected entity
        user: Username performing the action
        details: Additional context as JSON

    Returns:
        Created AuditLog instance
    """
    audit_log = AuditLog(
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        user=user,
        details=details,
        ip_address=get_client_ip(request) if request is not None else None,
        user_agent=request.headers.get("User-Agent") if request is not None else None
    )

    db.add(audit_log)
    db.commit()
    db.refresh(audit_log)

    return audit_log
