"""
Routes for BankAccount CRUD operations.
"""
import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select, delete
from sqlalchemy.ext.asyncio import AsyncSession

from projections.audit.services import AuditService
from projections.balances.repository import BalanceRepository
from projections.database import get_db
from projections.data.events.models import ProjectedEvent
from projections.data.recurring.models import RecurringRule
from projections.data.transactions.models import TransactionRecord
from .models import BankAccount
from .schemas import BankAccountCreate, BankAccountUpdate, BankAccountResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/bank-accounts", tags=["Bank Accounts"])


async def get_bank_account_or_404(db: AsyncSession, bank_account_id: str) -> BankAccount:
    result = await db.execute(select(BankAccount).where(BankAccount.id == bank_account_id))
    account = result.scalar_one_or_none()
    if not account:
        raise HTTPException(status_code=404, detail="Bank account not found")
    return account


@router.get("", response_model=List[BankAccountResponse])
async def list_bank_accounts(db: AsyncSession = Depends(get_db)):
    """List all bank accounts."""
    result = await db.execute(select(BankAccount).order_by(BankAccount.name))
    return result.scalars().all()


@router.post("", response_model=BankAccountResponse, status_code=201)
async def create_bank_account(
    data: BankAccountCreate,
    db: AsyncSession = Depends(get_db),
):
    """
    Create a bank account.

    Raises 400 if an account with the same sort code and number exists.
    """
    existing = await db.execute(
        select(BankAccount).where(
            BankAccount.sort_code == data.sort_code,
            BankAccount.account_number == data.account_number,
        )
    )
    if existing.scalar_one_or_none():
        raise HTTPException(
            status_code=400,
            detail="A bank account with this sort code and account number already exists"
        )

    account = BankAccount(**data.model_dump())
    db.add(account)
    await db.flush()
    await db.refresh(account)

    await AuditService(db).log_create("bank_account", account.id, data.model_dump())
    return account


@router.get("/{bank_account_id}", response_model=BankAccountResponse)
async def get_bank_account(
    bank_account_id: str,
    db: AsyncSession = Depends(get_db),
):
    """Get a bank account."""
    return await get_bank_account_or_404(db, bank_account_id)


@router.put("/{bank_account_id}", response_model=BankAccountResponse)
async def update_bank_account(
    bank_account_id: str,
    data: BankAccountUpdate,
    db: AsyncSession = Depends(get_db),
):
    """
    Update a bank account.

    Only provided fields are updated.
    """
    account = await get_bank_account_or_404(db, bank_account_id)

    changes = {}
    for field, value in data.model_dump(exclude_unset=True).items():
        changes[field] = (getattr(account, field), value)
        setattr(account, field, value)

    await db.flush()
    await db.refresh(account)

    await AuditService(db).log_update("bank_account", account.id, changes)
    return account


@router.delete("/{bank_account_id}")
async def delete_bank_account(
    bank_account_id: str,
    db: AsyncSession = Depends(get_db),
):
    """
    Delete a bank account and everything recorded against it.

    Dependent rows go first, in order: cached balances, projected events,
    recurring rules (revisions before base rules), transactions.
    """
    account = await get_bank_account_or_404(db, bank_account_id)

    balances = await BalanceRepository(db).delete_daily_balances(bank_account_id)
    events = await db.execute(
        delete(ProjectedEvent).where(ProjectedEvent.bank_account_id == bank_account_id)
    )
    revisions = await db.execute(
        delete(RecurringRule).where(
            RecurringRule.bank_account_id == bank_account_id,
            RecurringRule.is_base_rule.is_(False),
        )
    )
    rules = await db.execute(
        delete(RecurringRule).where(RecurringRule.bank_account_id == bank_account_id)
    )
    transactions = await db.execute(
        delete(TransactionRecord).where(TransactionRecord.bank_account_id == bank_account_id)
    )
    await db.delete(account)
    await db.flush()

    await AuditService(db).log_delete(
        "bank_account",
        bank_account_id,
        old_value={"name": account.name, "sort_code": account.sort_code},
    )

    logger.info(
        f"Deleted bank account {bank_account_id}: {balances} balances, "
        f"{events.rowcount} events, {transactions.rowcount} transactions"
    )
    return {
        "status": "deleted",
        "bank_account_id": bank_account_id,
        "deleted_daily_balances": balances,
        "deleted_projected_events": events.rowcount or 0,
        "deleted_recurring_rules": (revisions.rowcount or 0) + (rules.rowcount or 0),
        "deleted_transactions": transactions.rowcount or 0,
    }
