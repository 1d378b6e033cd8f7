"""
Transactions API endpoints
Inbound, outbound, adjustment and transfer transactions
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from inventory_app.api import deps
from inventory_app.models.auth import Profile
from inventory_app.schemas.common import SuccessResponse, TransactionType
from inventory_app.schemas.transactions import (
    ReleaseEmailResponse,
    TransactionCreate,
    TransactionDetailUpdate,
    TransactionFilter,
    TransactionHeaderResponse,
    TransactionHeaderUpdate,
    TransferCreate,
    TransferResponse,
)
from inventory_app.services.session_tracking import SessionContext, track_action
from inventory_app.services.transactions import TransactionService

router = APIRouter()


@router.get("", response_model=List[TransactionHeaderResponse])
def list_transactions(
    transaction_type: Optional[TransactionType] = None,
    warehouse: Optional[str] = None,
    search: Optional[str] = None,
    limit: Optional[int] = Query(None, ge=1, le=10000),
    db: Session = Depends(deps.get_db),
    current_user: Profile = Depends(deps.get_current_user),
    context: SessionContext = Depends(deps.get_session_context)
):
    """
    Transactions with their lines, newest first.
    """
    filters = TransactionFilter(transaction_type=transaction_type, warehouse=warehouse, search=search)
    transactions = TransactionService(db, current_user).list_transactions(filters, limit=limit)
    track_action(db, context, "view_transactions", {"count": len(transactions)})
    return transactions


@router.post("", response_model=TransactionHeaderResponse, status_code=status.HTTP_201_CREATED)
def create_transaction(
    transaction_in: TransactionCreate,
    db: Session = Depends(deps.get_db),
    current_user: Profile = Depends(deps.get_current_user),
    context: SessionContext = Depends(deps.get_session_context)
):
    """
    Create an Inbound, Outbound or Adjustment transaction.
    """
    transaction = TransactionService(db, current_user).create_transaction(transaction_in)
    track_action(db, context, "create_transaction", {
        "reference_number": transaction["reference_number"],
        "transaction_type": transaction["transaction_type"],
    })
    return transaction


@router.post("/transfer", response_model=TransferResponse, status_code=status.HTTP_201_CREATED)
def create_transfer(
    transfer_in: TransferCreate,
    db: Session = Depends(deps.get_db),
    current_user: Profile = Depends(deps.get_current_user),
    context: SessionContext = Depends(deps.get_session_context)
):
    """
    Create a transfer: outbound at the source and a pending inbound at the destination.
    """
    outbound, inbound = TransactionService(db, current_user).create_transfer(transfer_in)
    track_action(db, context, "create_transaction", {
        "reference_number": outbound["reference_number"],
        "transaction_type": "Transfer",
        "inbound_reference_number": inbound["reference_number"],
    })
    return {"outbound": outbound, "inbound": inbound}


@router.get("/{reference_number}/release-email", response_model=ReleaseEmailResponse)
def get_release_email(
    reference_number: str,
    db: Session = Depends(deps.get_db),
    current_user: Profile = Depends(deps.get_current_user)
):
    """
    Release/shipping email text for the transaction with this reference number.
    """
    return TransactionService(db, current_user).release_email(reference_number)


@router.get("/{transaction_id}", response_model=TransactionHeaderResponse)
def get_transaction(
    transaction_id: str,
    db: Session = Depends(deps.get_db),
    current_user: Profile = Depends(deps.get_current_user)
):
    """
    One transaction with its lines.
    """
    return TransactionService(db, current_user).get_transaction(transaction_id)


@router.put("/{transaction_id}", response_model=TransactionHeaderResponse)
def update_transaction_header(
    transaction_id: str,
    header_in: TransactionHeaderUpdate,
    db: Session = Depends(deps.get_db),
    current_user: Profile = Depends(deps.get_current_user),
    context: SessionContext = Depends(deps.get_session_context)
):
    """
    Update the editable header fields.
    """
    transaction = TransactionService(db, current_user).update_header(transaction_id, header_in)
    track_action(db, context, "update_transaction", {"reference_number": transaction["reference_number"]})
    return transaction


@router.put("/{transaction_id}/details/{detail_id}", response_model=TransactionHeaderResponse)
def update_transaction_detail(
    transaction_id: str,
    detail_id: str,
    detail_in: TransactionDetailUpdate,
    db: Session = Depends(deps.get_db),
    current_user: Profile = Depends(deps.get_current_user),
    context: SessionContext = Depends(deps.get_session_context)
):
    """
    Update one line; its status must be valid for the transaction type.
    """
    transaction = TransactionService(db, current_user).update_detail(transaction_id, detail_id, detail_in)
    track_action(db, context, "update_transaction", {
        "reference_number": transaction["reference_number"],
        "detail_id": detail_id,
    })
    return transaction


@router.post("/{transaction_id}/advance", response_model=TransactionHeaderResponse)
def advance_transaction(
    transaction_id: str,
    db: Session = Depends(deps.get_db),
    current_user: Profile = Depends(deps.get_current_user),
    context: SessionContext = Depends(deps.get_session_context)
):
    """
    Move every Pending line to Received, Shipped or Completed.
    """
    transaction = TransactionService(db, current_user).advance_transaction(transaction_id)
    track_action(db, context, "advance_transaction", {"reference_number": transaction["reference_number"]})
    return transaction


@router.delete("/{transaction_id}/details/{detail_id}", response_model=SuccessResponse)
def delete_transaction_detail(
    transaction_id: str,
    detail_id: str,
    db: Session = Depends(deps.get_db),
    current_user: Profile = Depends(deps.get_current_user),
    context: SessionContext = Depends(deps.get_session_context)
):
    """
    Delete one line of a transaction.
    """
    TransactionService(db, current_user).delete_detail(transaction_id, detail_id)
    track_action(db, context, "update_transaction", {"transaction_id": transaction_id, "deleted_detail": detail_id})
    return {"success": True, "message": "Transaction detail deleted"}


@router.delete("/{transaction_id}", response_model=SuccessResponse)
def delete_transaction(
    transaction_id: str,
    db: Session = Depends(deps.get_db),
    current_user: Profile = Depends(deps.get_current_user),
    context: SessionContext = Depends(deps.get_session_context)
):
    """
    Delete a transaction unless another transaction references it.
    """
    TransactionService(db, current_user).delete_header(transaction_id)
    track_action(db, context, "delete_transaction", {"transaction_id": transaction_id})
    return {"success": True, "message": "Transaction deleted"}
