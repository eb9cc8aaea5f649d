from typing import List, Annotated
from fastapi import APIRouter, Depends, HTTPException, status, Request
from sqlalchemy.orm import Session

from sheetsync.database import get_db
from sheetsync.models.connector import Connector as DBConnector
from sheetsync.schemas.connector import ConnectorCreate, ConnectorUpdate, ConnectorInDB
from sheetsync.schemas.auth import User
from sheetsync.auth import get_current_active_user
from sheetsync.utils.audit_logger import create_audit_log
from sheetsync.utils.encrypt import encrypt_data, mask_secret

import logging
log = logging.getLogger(__name__)

router = APIRouter()


def _to_response(db_connector: DBConnector) -> ConnectorInDB:
    response = ConnectorInDB.model_validate(db_connector)
    response.api_token = mask_secret(db_connector.api_token)
    return response


def _get_connector_or_404(db: Session, connector_id: int) -> DBConnector:
    db_connector = db.query(DBConnector).filter(DBConnector.id == connector_id).first()
    if db_connector is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Connector not found")
    return db_connector


@router.post("/", response_model=ConnectorInDB, status_code=status.HTTP_201_CREATED)
async def create_connector(
    request: Request,
    connector: ConnectorCreate,
    db: Session = Depends(get_db),
    current_user: Annotated[User, Depends(get_current_active_user)] = None
):
    """Create a new connector configuration."""
    if db.query(DBConnector).filter(DBConnector.name == connector.name).first():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Connector with this name already exists")

    db_connector = DBConnector(
        name=connector.name,
        type=connector.type,
        base_url=connector.base_url,
        api_token=encrypt_data(connector.api_token) if connector.api_token else None,
        is_active=connector.is_active,
        settings=connector.settings
    )
    db.add(db_connector)
    db.commit()
    db.refresh(db_connector)

    create_audit_log(
        db=db,
        request=request,
        action="connector_created",
        entity_type="connector",
        entity_id=db_connector.id,
        user=current_user.username if current_user else None,
        details={"connector_type": db_connector.type}
    )
    return _to_response(db_connector)


@router.get("/", response_model=List[ConnectorInDB])
async def read_connectors(
    skip: int = 0,
    limit: int = 100,
    db: Session = Depends(get_db),
    current_user: Annotated[User, Depends(get_current_active_user)] = None
):
    """Retrieve connector configurations. Tokens are masked."""
    connectors = db.query(DBConnector).order_by(DBConnector.id).offset(skip).limit(limit).all()
    return [_to_response(conn) for conn in connectors]


@router.get("/{connector_id}", response_model=ConnectorInDB)
async def read_connector(
    connector_id: int,
    db: Session = Depends(get_db),
    current_user: Annotated[User, Depends(get_current_active_user)] = None
):
    """Retrieve a single connector configuration by ID."""
    return _to_response(_get_connector_or_404(db, connector_id))


@router.patch("/{connector_id}", response_model=ConnectorInDB)
async def update_connector(
    request: Request,
    connector_id: int,
    connector: ConnectorUpdate,
    db: Session = Depends(get_db),
    current_user: Annotated[User, Depends(get_current_active_user)] = None
):
    """Update a connector. A new api_token replaces the stored one."""
    db_connector = _get_connector_or_404(db, connector_id)
    update_data = connector.model_dump(exclude_unset=True)

    if "name" in update_data and update_data["name"] != db_connector.name:
        if db.query(DBConnector).filter(DBConnector.name == update_data["name"]).first():
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Connector with this name already exists")

    if "api_token" in update_data:
        token = update_data.pop("api_token")
        db_connector.api_token = encrypt_data(token) if token else None

    for key, value in update_data.items():
        setattr(db_connector, key, value)

    db.commit()
    db.refresh(db_connector)

    create_audit_log(
        db=db,
        request=request,
        action="connector_updated",
        entity_type="connector",
        entity_id=db_connector.id,
        user=current_user.username if current_user else None,
        details={"updated_fields": sorted(connector.model_dump(exclude_unset=True).keys())}
    )
    return _to_response(db_connector)


@router.delete("/{connector_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_connector(
    request: Request,
    connector_id: int,
    db: Session = Depends(get_db),
    current_user: Annotated[User, Depends(get_current_active_user)] = None
):
    """Delete a connector. Mappings reading through it fail until another source account is assigned."""
    db_connector = _get_connector_or_404(db, connector_id)

    create_audit_log(
        db=db,
        request=request,
        action="connector_deleted",
        entity_type="connector",
        entity_id=db_connector.id,
        user=current_user.username if current_user else None,
        details={"name": db_connector.name, "connector_type": db_connector.type}
    )

    db.delete(db_connector)
    db.commit()
    return None
