from typing import List, Annotated, Optional
from fastapi import APIRouter, Depends, HTTPException, status, Request
from sqlalchemy.orm import Session

from sheetsync.database import get_db
from sheetsync.models.connector import Connector as DBConnector
from sheetsync.models.mapping import IntegrationMapping
from sheetsync.schemas.mapping import MappingCreate, MappingUpdate, MappingInDB
from sheetsync.schemas.auth import User
from sheetsync.auth import get_current_active_user
from sheetsync.utils.audit_logger import create_audit_log

router = APIRouter()


def get_owned_mapping(db: Session, mapping_id: int, user: Optional[User]) -> IntegrationMapping:
    """Mapping by id, 404 when missing or owned by someone else."""
    query = db.query(IntegrationMapping).filter(IntegrationMapping.id == mapping_id)
    if user is not None:
        query = query.filter(IntegrationMapping.user_id == user.username)
    db_mapping = query.first()
    if db_mapping is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Mapping not found")
    return db_mapping


def _check_connectors_exist(db: Session, data: dict) -> None:
    for key in ("source_connector_id", "target_connector_id"):
        connector_id = data.get(key)
        if connector_id is None:
            continue
        if db.query(DBConnector.id).filter(DBConnector.id == connector_id).first() is None:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Connector {connector_id} referenced by {key} does not exist"
            )


@router.post("/", response_model=MappingInDB, status_code=status.HTTP_201_CREATED)
async def create_mapping(
    request: Request,
    mapping: MappingCreate,
    db: Session = Depends(get_db),
    current_user: Annotated[User, Depends(get_current_active_user)] = None
):
    """Create a new integration mapping owned by the current user."""
    data = mapping.model_dump(mode="json")
    _check_connectors_exist(db, data)

    db_mapping = IntegrationMapping(user_id=current_user.username, sync_count=0, **data)
    db.add(db_mapping)
    db.commit()
    db.refresh(db_mapping)

    create_audit_log(
        db=db,
        request=request,
        action="mapping_created",
        entity_type="mapping",
        entity_id=db_mapping.id,
        user=current_user.username,
        details={
            "name": db_mapping.name,
            "target": f"{db_mapping.target_type}:{db_mapping.target_entity}"
        }
    )

    return db_mapping


@router.get("/", response_model=List[MappingInDB])
async def read_mappings(
    skip: int = 0,
    limit: int = 100,
    db: Session = Depends(get_db),
    current_user: Annotated[User, Depends(get_current_active_user)] = None
):
    """Retrieve the current user's mappings."""
    return db.query(IntegrationMapping).filter(
        IntegrationMapping.user_id == current_user.username
    ).order_by(IntegrationMapping.id).offset(skip).limit(limit).all()


@router.get("/{mapping_id}", response_model=MappingInDB)
async def read_mapping(
    mapping_id: int,
    db: Session = Depends(get_db),
    current_user: Annotated[User, Depends(get_current_active_user)] = None
):
    """Retrieve a single mapping by ID."""
    return get_owned_mapping(db, mapping_id, current_user)


@router.patch("/{mapping_id}", response_model=MappingInDB)
async def update_mapping(
    request: Request,
    mapping_id: int,
    mapping: MappingUpdate,
    db: Session = Depends(get_db),
    current_user: Annotated[User, Depends(get_current_active_user)] = None
):
    """Update an existing mapping."""
    db_mapping = get_owned_mapping(db, mapping_id, current_user)

    update_data = mapping.model_dump(mode="json", exclude_unset=True)
    _check_connectors_exist(db, update_data)

    for key, value in update_data.items():
        setattr(db_mapping, key, value)

    db.add(db_mapping)
    db.commit()
    db.refresh(db_mapping)

    create_audit_log(
        db=db,
        request=request,
        action="mapping_updated",
        entity_type="mapping",
        entity_id=db_mapping.id,
        user=current_user.username,
        details={"updated_fields": list(update_data.keys()), "name": db_mapping.name}
    )

    return db_mapping


@router.delete("/{mapping_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_mapping(
    request: Request,
    mapping_id: int,
    db: Session = Depends(get_db),
    current_user: Annotated[User, Depends(get_current_active_user)] = None
):
    """Delete a mapping together with its run history and scheduled jobs."""
    db_mapping = get_owned_mapping(db, mapping_id, current_user)

    # Log mapping deletion before removing
    create_audit_log(
        db=db,
        request=request,
        action="mapping_deleted",
        entity_type="mapping",
        entity_id=db_mapping.id,
        user=current_user.username,
        details={"name": db_mapping.name}
    )

    db.delete(db_mapping)
    db.commit()
    return None
