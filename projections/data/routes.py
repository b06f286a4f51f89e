"""Data API routes - handles all manual data input."""
from fastapi import APIRouter

from projections.data.bank_accounts.routes import router as bank_accounts_router
from projections.data.decision_paths.routes import router as decision_paths_router
from projections.data.events.routes import router as events_router
from projections.data.recurring.routes import router as recurring_router
from projections.data.transactions.routes import router as transactions_router

router = APIRouter()

router.include_router(bank_accounts_router)
router.include_router(decision_paths_router)
router.include_router(events_router)
router.include_router(recurring_router)
router.include_router(transactions_router)
