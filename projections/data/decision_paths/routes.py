"""
Routes for decision paths and scenario sets.
"""
from typing import List

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select, update, delete
from sqlalchemy.ext.asyncio import AsyncSession

from projections.audit.services import AuditService
from projections.database import get_db
from projections.data.events.models import ProjectedEvent
from projections.data.recurring.models import RecurringRule
from .models import DecisionPath, ScenarioSet, ScenarioSetDecisionPath
from .schemas import (
    DecisionPathCreate,
    DecisionPathUpdate,
    DecisionPathResponse,
    ScenarioSetCreate,
    ScenarioSetUpdate,
    ScenarioSetResponse,
    EnabledPathsResponse,
)

router = APIRouter(tags=["Decision Paths"])


# ============================================================================
# DECISION PATHS
# ============================================================================

async def _get_path_or_404(db: AsyncSession, path_id: str) -> DecisionPath:
    result = await db.execute(select(DecisionPath).where(DecisionPath.id == path_id))
    path = result.scalar_one_or_none()
    if not path:
        raise HTTPException(status_code=404, detail="Decision path not found")
    return path


@router.get("/decision-paths", response_model=List[DecisionPathResponse])
async def list_decision_paths(db: AsyncSession = Depends(get_db)):
    result = await db.execute(select(DecisionPath).order_by(DecisionPath.name))
    return result.scalars().all()


@router.post("/decision-paths", response_model=DecisionPathResponse, status_code=201)
async def create_decision_path(
    data: DecisionPathCreate,
    db: AsyncSession = Depends(get_db),
):
    """Create a decision path. Names are unique."""
    existing = await db.execute(select(DecisionPath).where(DecisionPath.name == data.name))
    if existing.scalar_one_or_none():
        raise HTTPException(status_code=400, detail="A decision path with this name already exists")

    path = DecisionPath(**data.model_dump())
    db.add(path)
    await db.flush()
    await db.refresh(path)

    await AuditService(db).log_create("decision_path", path.id, data.model_dump())
    return path


@router.get("/decision-paths/{path_id}", response_model=DecisionPathResponse)
async def get_decision_path(path_id: str, db: AsyncSession = Depends(get_db)):
    return await _get_path_or_404(db, path_id)


@router.put("/decision-paths/{path_id}", response_model=DecisionPathResponse)
async def update_decision_path(
    path_id: str,
    data: DecisionPathUpdate,
    db: AsyncSession = Depends(get_db),
):
    path = await _get_path_or_404(db, path_id)

    changes = {}
    for field, value in data.model_dump(exclude_unset=True).items():
        changes[field] = (getattr(path, field), value)
        setattr(path, field, value)

    await db.flush()
    await AuditService(db).log_update("decision_path", path.id, changes)
    return path


@router.delete("/decision-paths/{path_id}")
async def delete_decision_path(path_id: str, db: AsyncSession = Depends(get_db)):
    """
    Delete a decision path.

    Events and rules tagged with it become untagged, so they count in every
    projection from now on. Cached balances are not recomputed here; the
    cache is built without a decision-path filter.
    """
    path = await _get_path_or_404(db, path_id)

    events = await db.execute(
        update(ProjectedEvent)
        .where(ProjectedEvent.decision_path_id == path_id)
        .values(decision_path_id=None)
    )
    rules = await db.execute(
        update(RecurringRule)
        .where(RecurringRule.decision_path_id == path_id)
        .values(decision_path_id=None)
    )
    await db.execute(
        delete(ScenarioSetDecisionPath).where(ScenarioSetDecisionPath.decision_path_id == path_id)
    )
    await db.delete(path)
    await db.flush()

    await AuditService(db).log_delete("decision_path", path_id, old_value={"name": path.name})
    return {
        "status": "deleted",
        "decision_path_id": path_id,
        "untagged_events": events.rowcount or 0,
        "untagged_rules": rules.rowcount or 0,
    }


# ============================================================================
# SCENARIO SETS
# ============================================================================

async def _get_scenario_set_or_404(db: AsyncSession, scenario_set_id: str) -> ScenarioSet:
    result = await db.execute(select(ScenarioSet).where(ScenarioSet.id == scenario_set_id))
    scenario_set = result.scalar_one_or_none()
    if not scenario_set:
        raise HTTPException(status_code=404, detail="Scenario set not found")
    return scenario_set


async def _check_paths_exist(db: AsyncSession, path_ids: List[str]) -> None:
    if not path_ids:
        return
    result = await db.execute(select(DecisionPath.id).where(DecisionPath.id.in_(path_ids)))
    missing = set(path_ids) - set(result.scalars().all())
    if missing:
        raise HTTPException(
            status_code=404,
            detail=f"Decision paths not found: {', '.join(sorted(missing))}"
        )


def _apply_toggles(scenario_set: ScenarioSet, toggles: List[dict]) -> None:
    """Sync the toggle rows in place; paths left out are removed."""
    existing = {link.decision_path_id: link for link in scenario_set.decision_paths}
    wanted = {toggle["decision_path_id"]: toggle["enabled"] for toggle in toggles}

    for path_id, link in existing.items():
        if path_id in wanted:
            link.enabled = wanted[path_id]
        else:
            scenario_set.decision_paths.remove(link)

    for path_id, enabled in wanted.items():
        if path_id not in existing:
            scenario_set.decision_paths.append(
                ScenarioSetDecisionPath(decision_path_id=path_id, enabled=enabled)
            )


async def _clear_other_defaults(db: AsyncSession, scenario_set_id: str) -> None:
    """Only one scenario set may be the default."""
    await db.execute(
        update(ScenarioSet)
        .where(ScenarioSet.id != scenario_set_id, ScenarioSet.is_default.is_(True))
        .values(is_default=False)
    )


@router.get("/scenario-sets", response_model=List[ScenarioSetResponse])
async def list_scenario_sets(db: AsyncSession = Depends(get_db)):
    result = await db.execute(select(ScenarioSet).order_by(ScenarioSet.name))
    return result.scalars().all()


@router.post("/scenario-sets", response_model=ScenarioSetResponse, status_code=201)
async def create_scenario_set(
    data: ScenarioSetCreate,
    db: AsyncSession = Depends(get_db),
):
    """Create a scenario set with its decision path toggles."""
    await _check_paths_exist(db, [toggle.decision_path_id for toggle in data.decision_paths])

    scenario_set = ScenarioSet(
        name=data.name,
        description=data.description,
        is_default=data.is_default,
        decision_paths=[
            ScenarioSetDecisionPath(decision_path_id=toggle.decision_path_id, enabled=toggle.enabled)
            for toggle in data.decision_paths
        ],
    )
    db.add(scenario_set)
    await db.flush()

    if scenario_set.is_default:
        await _clear_other_defaults(db, scenario_set.id)

    await db.refresh(scenario_set)

    await AuditService(db).log_create("scenario_set", scenario_set.id, data.model_dump())
    return scenario_set


@router.get("/scenario-sets/{scenario_set_id}", response_model=ScenarioSetResponse)
async def get_scenario_set(scenario_set_id: str, db: AsyncSession = Depends(get_db)):
    return await _get_scenario_set_or_404(db, scenario_set_id)


@router.get("/scenario-sets/{scenario_set_id}/enabled-paths", response_model=EnabledPathsResponse)
async def get_enabled_paths(scenario_set_id: str, db: AsyncSession = Depends(get_db)):
    """Decision path ids a projection should run with for this scenario set."""
    scenario_set = await _get_scenario_set_or_404(db, scenario_set_id)
    return EnabledPathsResponse(
        scenario_set_id=scenario_set.id,
        enabled_decision_path_ids=sorted(scenario_set.enabled_decision_path_ids),
    )


@router.put("/scenario-sets/{scenario_set_id}", response_model=ScenarioSetResponse)
async def update_scenario_set(
    scenario_set_id: str,
    data: ScenarioSetUpdate,
    db: AsyncSession = Depends(get_db),
):
    scenario_set = await _get_scenario_set_or_404(db, scenario_set_id)
    update_data = data.model_dump(exclude_unset=True)

    toggles = update_data.pop("decision_paths", None)
    if toggles is not None:
        await _check_paths_exist(db, [toggle["decision_path_id"] for toggle in toggles])
        _apply_toggles(scenario_set, toggles)

    changes = {}
    for field, value in update_data.items():
        changes[field] = (getattr(scenario_set, field), value)
        setattr(scenario_set, field, value)

    await db.flush()
    if scenario_set.is_default:
        await _clear_other_defaults(db, scenario_set.id)

    await db.refresh(scenario_set)

    await AuditService(db).log_update("scenario_set", scenario_set.id, changes)
    return scenario_set


@router.delete("/scenario-sets/{scenario_set_id}")
async def delete_scenario_set(scenario_set_id: str, db: AsyncSession = Depends(get_db)):
    scenario_set = await _get_scenario_set_or_404(db, scenario_set_id)
    await db.delete(scenario_set)
    await db.flush()

    await AuditService(db).log_delete("scenario_set", scenario_set_id, old_value={"name": scenario_set.name})
    return {"status": "deleted", "scenario_set_id": scenario_set_id}
