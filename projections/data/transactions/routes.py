"""
Routes for imported transaction history.

Transactions are the ground truth the projection anchors on, so adding or
removing one refreshes the balance cache from its date onwards.
"""
from collections import defaultdict
from datetime import date
from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from projections.audit.services import AuditService
from projections.balances.triggers import horizon_end, recalculate_after_change
from projections.database import get_db
from projections.data.bank_accounts.models import BankAccount
from . import queries
from .models import TransactionRecord
from .schemas import (
    TransactionBatchCreate,
    TransactionBatchResponse,
    TransactionRecordResponse,
    TransactionCoverageResponse,
    BalanceHistoryPoint,
    BalanceHistoryResponse,
    TransactionStatsResponse,
)

router = APIRouter(prefix="/transaction-records", tags=["Transaction Records"])


async def _require_account(db: AsyncSession, bank_account_id: str) -> None:
    if not await db.get(BankAccount, bank_account_id):
        raise HTTPException(status_code=404, detail="Bank account not found")


async def _next_sequences(
    db: AsyncSession,
    bank_account_id: str,
    dates: List[date],
) -> Dict[date, int]:
    """Next free sequence number for each date already holding rows."""
    result = await db.execute(
        select(TransactionRecord.transaction_date, func.max(TransactionRecord.sequence))
        .where(
            TransactionRecord.bank_account_id == bank_account_id,
            TransactionRecord.transaction_date.in_(sorted(set(dates))),
        )
        .group_by(TransactionRecord.transaction_date)
    )
    return {row[0]: row[1] + 1 for row in result}


@router.get("", response_model=List[TransactionRecordResponse])
async def list_transactions(
    bank_account_id: str = Query(...),
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    db: AsyncSession = Depends(get_db),
):
    """List transactions of an account in statement order."""
    query = select(TransactionRecord).where(TransactionRecord.bank_account_id == bank_account_id)
    if start_date:
        query = query.where(TransactionRecord.transaction_date >= start_date)
    if end_date:
        query = query.where(TransactionRecord.transaction_date <= end_date)

    result = await db.execute(
        query.order_by(
            TransactionRecord.transaction_date,
            TransactionRecord.sequence,
            TransactionRecord.created_at,
        )
    )
    return result.scalars().all()


@router.post("", response_model=TransactionBatchResponse, status_code=201)
async def create_transactions(
    data: TransactionBatchCreate,
    db: AsyncSession = Depends(get_db),
):
    """
    Record a batch of statement rows.

    Balances are recomputed from the earliest row's date over the
    recalculation horizon past the latest row.
    """
    await _require_account(db, data.bank_account_id)

    dates = [row.transaction_date for row in data.transactions]
    next_sequence = defaultdict(int, await _next_sequences(db, data.bank_account_id, dates))

    records = []
    for row in data.transactions:
        record = TransactionRecord(
            bank_account_id=data.bank_account_id,
            sequence=next_sequence[row.transaction_date],
            **row.model_dump(),
        )
        next_sequence[row.transaction_date] += 1
        db.add(record)
        records.append(record)

    await db.flush()
    for record in records:
        await db.refresh(record)

    earliest, latest = min(dates), max(dates)
    await AuditService(db).log(
        "transaction_record",
        data.bank_account_id,
        "create",
        new_value={"count": len(records), "earliest": earliest, "latest": latest},
    )
    days = await recalculate_after_change(db, data.bank_account_id, earliest, horizon_end(latest))

    return TransactionBatchResponse(
        created=len(records),
        transactions=[TransactionRecordResponse.model_validate(record) for record in records],
        recalculated_from=earliest,
        days_recalculated=days,
    )


@router.get("/coverage", response_model=TransactionCoverageResponse)
async def get_coverage(
    bank_account_id: str = Query(...),
    db: AsyncSession = Depends(get_db),
):
    """First and last day covered by real transactions."""
    coverage = await queries.get_transaction_coverage(db, bank_account_id)
    return TransactionCoverageResponse(
        bank_account_id=bank_account_id,
        earliest_date=coverage.earliest_date,
        latest_covered_date=coverage.latest_covered_date,
        transaction_count=coverage.transaction_count,
    )


@router.get("/balance-history", response_model=BalanceHistoryResponse)
async def get_balance_history(
    bank_account_id: str = Query(...),
    start_date: date = Query(...),
    end_date: date = Query(...),
    db: AsyncSession = Depends(get_db),
):
    """Closing balance of every day with transactions in a range."""
    if start_date > end_date:
        raise HTTPException(status_code=400, detail="start_date must be on or before end_date")

    history = await queries.get_balance_history(db, bank_account_id, start_date, end_date)
    return BalanceHistoryResponse(
        bank_account_id=bank_account_id,
        history=[BalanceHistoryPoint(date=point.date, balance=point.balance) for point in history],
    )


@router.get("/stats", response_model=TransactionStatsResponse)
async def get_stats(
    bank_account_id: str = Query(...),
    db: AsyncSession = Depends(get_db),
):
    stats = await queries.get_transaction_stats(db, bank_account_id)
    return TransactionStatsResponse(bank_account_id=bank_account_id, **stats)


@router.delete("/{transaction_id}")
async def delete_transaction(transaction_id: str, db: AsyncSession = Depends(get_db)):
    """Delete a transaction and refresh the balance cache from its date."""
    result = await db.execute(
        select(TransactionRecord).where(TransactionRecord.id == transaction_id)
    )
    record = result.scalar_one_or_none()
    if not record:
        raise HTTPException(status_code=404, detail="Transaction not found")

    bank_account_id = record.bank_account_id
    transaction_date = record.transaction_date

    await db.delete(record)
    await db.flush()

    await AuditService(db).log_delete(
        "transaction_record",
        transaction_id,
        old_value={"date": transaction_date, "balance": record.balance},
    )
    await recalculate_after_change(db, bank_account_id, transaction_date)
    return {"status": "deleted", "transaction_id": transaction_id}
