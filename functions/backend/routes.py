"""
HTTP routes for the expense API.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, Response

from backend.auth import (
    close_session,
    get_bearer_token,
    get_current_user,
    hash_password,
    open_session,
    verify_password,
)
from backend.db import DbClient, DuplicateUserError, UserRecord
from backend.dependencies import get_db_client, get_session_store
from backend.schemas import (
    CategoryTotal,
    CredentialsRequest,
    ExpensePayload,
    ExpenseResponse,
    ExpenseSummaryResponse,
    ExpenseUpdatePayload,
    MonthTotal,
    StatusResponse,
    TokenResponse,
)
from backend.sessions import SessionStore

logger = logging.getLogger(__name__)

router = APIRouter()

DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100


@router.get("/health", response_model=StatusResponse)
def health():
    return StatusResponse(status="ok")


@router.post("/auth/register", response_model=TokenResponse, status_code=201)
def register(
    payload: CredentialsRequest,
    db: DbClient = Depends(get_db_client),
    sessions: SessionStore = Depends(get_session_store),
):
    try:
        user = db.create_user(payload.email, hash_password(payload.password))
    except DuplicateUserError:
        raise HTTPException(status_code=409, detail="Email already registered")
    logger.info("Registered user %s", user.user_id)
    return TokenResponse(token=open_session(sessions, user.user_id))


@router.post("/auth/login", response_model=TokenResponse)
def login(
    payload: CredentialsRequest,
    db: DbClient = Depends(get_db_client),
    sessions: SessionStore = Depends(get_session_store),
):
    user = db.get_user_by_email(payload.email)
    if not user or not verify_password(payload.password, user.password_hash):
        raise HTTPException(
            status_code=401,
            detail="Invalid email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return TokenResponse(token=open_session(sessions, user.user_id))


@router.post("/auth/logout", response_model=StatusResponse)
def logout(
    token: str = Depends(get_bearer_token),
    sessions: SessionStore = Depends(get_session_store),
):
    close_session(sessions, token)
    return StatusResponse(status="ok")


@router.get("/expenses", response_model=list[ExpenseResponse])
def list_expenses(
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    user: UserRecord = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    """
    Return one page of the caller's expenses, most recent date first.
    """
    offset = (page - 1) * limit
    records = db.list_expenses(user.user_id, limit=limit, offset=offset)
    return [ExpenseResponse.from_expense(r.to_expense()) for r in records]


@router.get("/expenses/summary", response_model=ExpenseSummaryResponse)
def expense_summary(
    user: UserRecord = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    summary = db.summarize_expenses(user.user_id)
    return ExpenseSummaryResponse(
        total=float(summary.total),
        count=summary.count,
        by_category=[
            CategoryTotal(category=category, total=float(total))
            for category, total in summary.by_category
        ],
        by_month=[
            MonthTotal(month=month, total=float(total))
            for month, total in summary.by_month
        ],
    )


@router.post("/expenses", response_model=ExpenseResponse, status_code=201)
def create_expense(
    payload: ExpensePayload,
    user: UserRecord = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    record = db.create_expense(user.user_id, payload.to_draft())
    return ExpenseResponse.from_expense(record.to_expense())


@router.put("/expenses/{expense_id}", response_model=ExpenseResponse)
def update_expense(
    expense_id: str,
    payload: ExpenseUpdatePayload,
    user: UserRecord = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    if payload.id is not None and payload.id != expense_id:
        raise HTTPException(status_code=400, detail="Expense id mismatch")
    record = db.update_expense(user.user_id, expense_id, payload.to_draft())
    if not record:
        raise HTTPException(status_code=404, detail="Expense not found")
    return ExpenseResponse.from_expense(record.to_expense())


@router.delete("/expenses/{expense_id}", status_code=204)
def delete_expense(
    expense_id: str,
    user: UserRecord = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    if not db.delete_expense(user.user_id, expense_id):
        raise HTTPException(status_code=404, detail="Expense not found")
    return Response(status_code=204)
