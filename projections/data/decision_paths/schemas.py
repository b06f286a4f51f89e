"""Pydantic schemas for decision paths and scenario sets."""
from pydantic import BaseModel, Field
from datetime import datetime
from typing import List, Optional


# =============================================================================
# Decision Paths
# =============================================================================

class DecisionPathCreate(BaseModel):
    """Schema for creating a decision path."""
    name: str = Field(..., min_length=1)
    description: Optional[str] = None


class DecisionPathUpdate(BaseModel):
    """Schema for updating a decision path. All fields optional."""
    name: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None


class DecisionPathResponse(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    created_at: datetime

    model_config = {"from_attributes": True}


# =============================================================================
# Scenario Sets
# =============================================================================

class ScenarioSetPathToggle(BaseModel):
    """Toggle state of one decision path inside a scenario set."""
    decision_path_id: str
    enabled: bool = True


class ScenarioSetCreate(BaseModel):
    """Schema for creating a scenario set."""
    name: str = Field(..., min_length=1)
    description: Optional[str] = None
    is_default: bool = False
    decision_paths: List[ScenarioSetPathToggle] = Field(default_factory=list)


class ScenarioSetUpdate(BaseModel):
    """
    Schema for updating a scenario set.

    When ``decision_paths`` is given it replaces the full toggle list.
    """
    name: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    is_default: Optional[bool] = None
    decision_paths: Optional[List[ScenarioSetPathToggle]] = None


class ScenarioSetPathResponse(BaseModel):
    decision_path_id: str
    enabled: bool

    model_config = {"from_attributes": True}


class ScenarioSetResponse(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    is_default: bool
    decision_paths: List[ScenarioSetPathResponse] = []
    created_at: datetime
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class EnabledPathsResponse(BaseModel):
    scenario_set_id: str
    enabled_decision_path_ids: List[str]
