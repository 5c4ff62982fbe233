from datetime import datetime, timezone
from typing import Literal, Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Query, status
from sqlalchemy.orm import Session

from barter.api.schemas import (
    TransactionCreateRequest,
    TransactionDetailResponse,
    TransactionListResponse,
    TransactionRecord,
    TransactionRow,
    TransactionUpdateRequest,
)
from barter.core.config import settings
from barter.db.session import get_db
from barter.models import User
from barter.services import projector
from barter.services import transactions as transaction_service
from barter.services.errors import TransactionError

router = APIRouter()


def get_current_user(
    x_user_id: Optional[int] = Header(default=None, description="Acting user id"),
    db: Session = Depends(get_db),
) -> User:
    """Resolve the acting user and apply the ban/verification gate."""
    if x_user_id is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized request")
    user = db.get(User, x_user_id)
    if not user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid user")
    if user.is_banned:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Forbidden Access. User account has been banned",
        )
    if settings.require_verified_users and not user.is_verified:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden Access. User not verified"
        )
    return user


@router.get("/health")
def read_health():
    """Return minimal health metadata for smoke checks."""
    return {
        "status": "ok",
        "service": settings.project_name,
        "version": settings.version,
        "environment": settings.environment,
        "commit": settings.commit_sha,
        "timestamp": datetime.now(tz=timezone.utc).isoformat(),
    }


@router.post("/transactions", response_model=TransactionRecord)
def create_transaction(
    request: TransactionCreateRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    try:
        record = transaction_service.initiate_transaction(
            db,
            user.id,
            transaction_type=request.transaction_type,
            product_offered_id=request.product_offered_id,
            product_requested_id=request.product_requested_id,
            price_offered=request.price_offered,
            price_requested=request.price_requested,
        )
    except TransactionError as exc:
        raise HTTPException(status_code=exc.status_code, detail=exc.message)
    return TransactionRecord.model_validate(record)


@router.get("/transactions", response_model=TransactionListResponse)
def list_transactions(
    role: Optional[Literal["initiator", "recipient"]] = Query(
        default=None, description="Restrict to one side of the negotiation"
    ),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    try:
        rows = projector.list_transactions(db, user.id, role)
    except TransactionError as exc:
        raise HTTPException(status_code=exc.status_code, detail=exc.message)
    return TransactionListResponse(transactions=[TransactionRow(**row) for row in rows])


@router.get("/transactions/product/{product_id}", response_model=TransactionListResponse)
def list_product_transactions(
    product_id: int,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    try:
        rows = projector.list_product_transactions(db, user.id, product_id)
    except TransactionError as exc:
        raise HTTPException(status_code=exc.status_code, detail=exc.message)
    return TransactionListResponse(transactions=[TransactionRow(**row) for row in rows])


@router.get("/transactions/{transaction_id}", response_model=TransactionDetailResponse)
def get_transaction(
    transaction_id: int,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    try:
        detail = projector.get_transaction_details(db, user.id, transaction_id)
    except TransactionError as exc:
        raise HTTPException(status_code=exc.status_code, detail=exc.message)
    return TransactionDetailResponse(**detail)


def _update(db: Session, transaction_id: int, user: User, request: TransactionUpdateRequest, update):
    try:
        record = update(
            db,
            transaction_id,
            user.id,
            order_status=request.order_status,
            price_offered=request.price_offered,
            price_requested=request.price_requested,
        )
    except TransactionError as exc:
        raise HTTPException(status_code=exc.status_code, detail=exc.message)
    return TransactionRecord.model_validate(record)


@router.patch("/transactions/initiate/{transaction_id}", response_model=TransactionRecord)
def update_as_initiator(
    transaction_id: int,
    request: TransactionUpdateRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return _update(db, transaction_id, user, request, transaction_service.update_transaction_as_initiator)


@router.patch("/transactions/recipient/{transaction_id}", response_model=TransactionRecord)
def update_as_recipient(
    transaction_id: int,
    request: TransactionUpdateRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return _update(db, transaction_id, user, request, transaction_service.update_transaction_as_recipient)
