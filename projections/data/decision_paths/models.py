"""Decision paths and scenario sets for what-if comparisons."""
from sqlalchemy import Column, String, DateTime, Boolean, Text, ForeignKey, Index, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from projections.database import Base
from projections.data.base import generate_id


class DecisionPath(Base):
    """
    A scenario toggle ("what if I buy the car?").

    Events and recurring rules may carry a decision path. When a projection
    runs with a set of enabled decision paths, tagged events outside that set
    are left out. Untagged events always count.
    """

    __tablename__ = "decision_paths"

    id = Column(String, primary_key=True, default=lambda: generate_id("path"))
    name = Column(String, nullable=False, unique=True)
    description = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)


class ScenarioSet(Base):
    """A saved combination of enabled/disabled decision paths."""

    __tablename__ = "scenario_sets"

    id = Column(String, primary_key=True, default=lambda: generate_id("scn"))
    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    is_default = Column(Boolean, nullable=False, default=False, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    # Relationships
    decision_paths = relationship(
        "ScenarioSetDecisionPath",
        back_populates="scenario_set",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    @property
    def enabled_decision_path_ids(self) -> set:
        return {link.decision_path_id for link in self.decision_paths if link.enabled}


class ScenarioSetDecisionPath(Base):
    """Toggle state of one decision path inside a scenario set."""

    __tablename__ = "scenario_set_decision_paths"

    id = Column(String, primary_key=True, default=lambda: generate_id("ssdp"))
    scenario_set_id = Column(
        String, ForeignKey("scenario_sets.id", ondelete="CASCADE"), nullable=False
    )
    decision_path_id = Column(
        String, ForeignKey("decision_paths.id", ondelete="CASCADE"), nullable=False
    )
    enabled = Column(Boolean, nullable=False, default=True)

    scenario_set = relationship("ScenarioSet", back_populates="decision_paths")

    __table_args__ = (
        UniqueConstraint("scenario_set_id", "decision_path_id", name="uq_scenario_set_path"),
        Index("ix_scenario_set_paths_path", "decision_path_id"),
    )
