"""
Master Data API endpoints
Generic CRUD over the registry of reference tables
"""
from typing import Any, Dict, List

from fastapi import APIRouter, Body, Depends, status
from sqlalchemy.orm import Session

from inventory_app.api import deps
from inventory_app.models.auth import Profile
from inventory_app.schemas.common import SuccessResponse
from inventory_app.schemas.master_data import MasterDataListResponse, TableInfo
from inventory_app.services.master_data import MasterDataService
from inventory_app.services.master_data.registry import TRACKED_TABLES, get_table_spec
from inventory_app.services.session_tracking import SessionContext, track_action

router = APIRouter()


def _track_write(db: Session, context: SessionContext, verb: str, table: str, key: Any) -> None:
    if table in TRACKED_TABLES:
        track_action(db, context, f"{verb}_{table}", {"table": table, "key": str(key)})


@router.get("/tables", response_model=List[TableInfo])
def list_tables(
    db: Session = Depends(deps.get_db),
    current_user: Profile = Depends(deps.get_current_user)
):
    """
    Tables in the registry with their columns, keys and required fields.
    """
    return MasterDataService(db, current_user).list_tables()


@router.get("/{table}", response_model=MasterDataListResponse)
def list_records(
    table: str,
    db: Session = Depends(deps.get_db),
    current_user: Profile = Depends(deps.get_current_user),
    context: SessionContext = Depends(deps.get_session_context)
):
    """
    All records of a master data table.
    """
    records = MasterDataService(db, current_user).list_records(table)
    track_action(db, context, "view_master_data", {"table": table})
    return {"table": table, "records": records, "total": len(records)}


@router.get("/{table}/options")
def get_foreign_key_options(
    table: str,
    db: Session = Depends(deps.get_db),
    current_user: Profile = Depends(deps.get_current_user)
):
    """
    Selectable values for each foreign key column of a table.
    """
    return MasterDataService(db, current_user).get_foreign_key_options(table)


@router.post("/{table}", status_code=status.HTTP_201_CREATED)
def add_record(
    table: str,
    data: Dict[str, Any] = Body(...),
    db: Session = Depends(deps.get_db),
    current_user: Profile = Depends(deps.require_admin),
    context: SessionContext = Depends(deps.get_session_context)
):
    """
    Add a record (admin only).
    """
    record = MasterDataService(db, current_user).add_record(table, data)
    _track_write(db, context, "add", table, record[get_table_spec(table).primary_key])
    return record


@router.get("/{table}/{key:path}")
def get_record(
    table: str,
    key: str,
    db: Session = Depends(deps.get_db),
    current_user: Profile = Depends(deps.get_current_user)
):
    """
    One record by primary key.
    """
    return MasterDataService(db, current_user).get_record(table, key)


@router.put("/{table}/{key:path}")
def update_record(
    table: str,
    key: str,
    data: Dict[str, Any] = Body(...),
    db: Session = Depends(deps.get_db),
    current_user: Profile = Depends(deps.require_admin),
    context: SessionContext = Depends(deps.get_session_context)
):
    """
    Update a record by primary key (admin only).
    """
    record = MasterDataService(db, current_user).update_record(table, key, data)
    _track_write(db, context, "update", table, key)
    return record


@router.delete("/{table}/{key:path}", response_model=SuccessResponse)
def delete_record(
    table: str,
    key: str,
    db: Session = Depends(deps.get_db),
    current_user: Profile = Depends(deps.require_admin),
    context: SessionContext = Depends(deps.get_session_context)
):
    """
    Delete a record by primary key (admin only).
    """
    MasterDataService(db, current_user).delete_record(table, key)
    _track_write(db, context, "delete", table, key)
    return {"success": True, "message": f"Deleted {table} record {key}"}
