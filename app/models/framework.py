"""
OE Framework Manager
Framework domain models.

Models:
    - OeElement: top-level framework category (numbered 1–8)
    - OeProcess: documented procedure owned by one element
    - ProcessStep: ordered unit of work inside a process
    - StepOutcome: decision edge (from step → to step) stored as a flat row
    - PerformanceMeasure: KPI attached to a process, optionally to a goal
    - StrategicGoal: balanced-scorecard objective owned by an element
    - ElementPerformanceMetric: element-level tracked metric

Architecture chain: Element → Process → Step / Measure
                    Element → StrategicGoal ← Measure (weak, SET NULL)
"""

import uuid
from datetime import datetime, timezone

from app.models import db


__all__ = [
    "OeElement",
    "OeProcess",
    "ProcessStep",
    "StepOutcome",
    "PerformanceMeasure",
    "StrategicGoal",
    "ElementPerformanceMetric",
]


# ── Constants ────────────────────────────────────────────────────────────────

# Shared by StrategicGoal.category and PerformanceMeasure.scorecard_category.
SCORECARD_CATEGORIES = ("Financial", "Customer", "Internal Process", "Learning & Growth")
OTHER_CATEGORY = "Other"

PROCESS_STATUSES = ("draft", "active", "review", "archived")
STEP_TYPES = ("task", "decision", "start", "end")
RISK_RATINGS = ("Low", "Medium", "High")
GOAL_PRIORITIES = ("High", "Medium", "Low")
METRIC_TRENDS = ("up", "down", "stable")


# ── Helpers ──────────────────────────────────────────────────────────────────

def _uuid():
    return str(uuid.uuid4())


def _utcnow():
    return datetime.now(timezone.utc)


def _iso(value):
    return value.isoformat() if value else None


# ── Risk scoring ─────────────────────────────────────────────────────────────

_RATING_SCORE = {"high": 3, "medium": 2}


def risk_level(frequency, impact):
    """
    Classify a process risk from its frequency and impact ratings.

    Score = frequency (1-3) × impact (1-3):
      7-9 → High Risk
      3-6 → Medium Risk
      1-2 → Low Risk
    Missing frequency or impact → Not Assessed (score 0).
    """
    if not frequency or not impact:
        return {"level": "Not Assessed", "color": "gray", "score": 0}

    freq_score = _RATING_SCORE.get(str(frequency).lower(), 1)
    impact_score = _RATING_SCORE.get(str(impact).lower(), 1)
    score = freq_score * impact_score

    if score >= 7:
        return {"level": "High Risk", "color": "red", "score": score}
    if score >= 3:
        return {"level": "Medium Risk", "color": "yellow", "score": score}
    return {"level": "Low Risk", "color": "green", "score": score}


def metric_percentage(current_value, target_value):
    """Progress of a metric towards its target, as a rounded percentage."""
    if not target_value:
        return 0
    return round((current_value or 0) / target_value * 100)


# ═════════════════════════════════════════════════════════════════════════════
#  ELEMENT
# ═════════════════════════════════════════════════════════════════════════════

class OeElement(db.Model):
    """
    A top-level framework element grouping related processes.

    ``enabling_elements`` is a free-text label list that names other
    elements; it is not a foreign key and is never resolved.
    """

    __tablename__ = "oe_elements"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    element_number = db.Column(db.Integer, nullable=False, unique=True, index=True)
    title = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, default="")
    icon = db.Column(db.String(100), nullable=True)
    color = db.Column(db.String(50), nullable=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    enabling_elements = db.Column(db.JSON, default=list)

    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    processes = db.relationship(
        "OeProcess", back_populates="element",
        cascade="all, delete-orphan", passive_deletes=True,
    )
    goals = db.relationship(
        "StrategicGoal", back_populates="element",
        cascade="all, delete-orphan", passive_deletes=True,
    )
    metrics = db.relationship(
        "ElementPerformanceMetric", back_populates="element",
        cascade="all, delete-orphan", passive_deletes=True,
    )

    def get_enabling_elements(self):
        return list(self.enabling_elements or [])

    def set_enabling_elements(self, labels):
        """Store labels as an ordered, de-duplicated list of non-blank strings."""
        seen = []
        for label in labels or []:
            text = str(label).strip()
            if text and text not in seen:
                seen.append(text)
        self.enabling_elements = seen

    def to_dict(self):
        return {
            "id": self.id,
            "element_number": self.element_number,
            "title": self.title,
            "description": self.description,
            "icon": self.icon,
            "color": self.color,
            "is_active": self.is_active,
            "enabling_elements": self.get_enabling_elements(),
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }

    def __repr__(self):
        return f"<OeElement {self.element_number}: {self.title[:40]}>"


# ═════════════════════════════════════════════════════════════════════════════
#  PROCESS
# ═════════════════════════════════════════════════════════════════════════════

class OeProcess(db.Model):
    """
    A documented operational procedure belonging to one element.

    ``process_number`` follows "OE-<element>.<sequence>" and is ordered with
    the natural sort comparator, never by numeric cast.
    """

    __tablename__ = "oe_processes"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    element_id = db.Column(
        db.String(36), db.ForeignKey("oe_elements.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    process_number = db.Column(db.String(50), nullable=False, unique=True, index=True)
    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, default="")
    process_owner = db.Column(db.String(255), default="")
    issue_date = db.Column(db.Date, nullable=True)
    revision = db.Column(db.Integer, default=1)
    status = db.Column(db.String(20), nullable=False, default="draft", index=True,
                       comment="draft | active | review | archived")
    is_mandatory = db.Column(db.Boolean, nullable=False, default=False)

    # Table-of-contents sections
    expectations = db.Column(db.Text, default="")
    responsibilities = db.Column(db.Text, default="")
    inputs = db.Column(db.Text, default="")
    deliverables = db.Column(db.Text, default="")
    quality_criticality = db.Column(db.Text, default="")
    process_steps_content = db.Column(db.Text, default="")
    performance_measure_content = db.Column(db.Text, default="")

    # Risk assessment
    risk_frequency = db.Column(db.String(10), nullable=True, comment="Low | Medium | High")
    risk_impact = db.Column(db.String(10), nullable=True, comment="Low | Medium | High")
    risk_description = db.Column(db.Text, default="")
    risk_mitigation = db.Column(db.Text, default="")

    created_by = db.Column(db.String(100), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    element = db.relationship("OeElement", back_populates="processes")
    steps = db.relationship(
        "ProcessStep", back_populates="process",
        cascade="all, delete-orphan", passive_deletes=True,
    )
    outcomes = db.relationship(
        "StepOutcome", cascade="all, delete-orphan", passive_deletes=True,
    )
    measures = db.relationship(
        "PerformanceMeasure", back_populates="process",
        cascade="all, delete-orphan", passive_deletes=True,
    )
    versions = db.relationship(
        "DocumentVersion", cascade="all, delete-orphan", passive_deletes=True,
    )
    documents = db.relationship(
        "ProcessDocument", cascade="all, delete-orphan", passive_deletes=True,
    )

    def to_dict(self):
        return {
            "id": self.id,
            "element_id": self.element_id,
            "process_number": self.process_number,
            "name": self.name,
            "description": self.description,
            "process_owner": self.process_owner,
            "issue_date": _iso(self.issue_date),
            "revision": self.revision,
            "status": self.status,
            "is_mandatory": self.is_mandatory,
            "expectations": self.expectations,
            "responsibilities": self.responsibilities,
            "inputs": self.inputs,
            "deliverables": self.deliverables,
            "quality_criticality": self.quality_criticality,
            "process_steps_content": self.process_steps_content,
            "performance_measure_content": self.performance_measure_content,
            "risk_frequency": self.risk_frequency,
            "risk_impact": self.risk_impact,
            "risk_description": self.risk_description,
            "risk_mitigation": self.risk_mitigation,
            "risk": risk_level(self.risk_frequency, self.risk_impact),
            "created_by": self.created_by,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }

    def __repr__(self):
        return f"<OeProcess {self.process_number}: {self.name[:40]}>"


# ═════════════════════════════════════════════════════════════════════════════
#  STEP + OUTCOME
# ═════════════════════════════════════════════════════════════════════════════

class ProcessStep(db.Model):
    """An ordered unit of work; ``step_number`` is neither contiguous nor unique."""

    __tablename__ = "process_steps"
    __table_args__ = (
        db.Index("idx_step_process_number", "process_id", "step_number"),
    )

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    process_id = db.Column(
        db.String(36), db.ForeignKey("oe_processes.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    step_number = db.Column(db.Integer, nullable=False, default=1)
    step_type = db.Column(db.String(20), nullable=False, default="task",
                          comment="task | decision | start | end")
    step_name = db.Column(db.String(255), nullable=False)
    step_details = db.Column(db.Text, default="")
    responsibilities = db.Column(db.Text, default="")
    references = db.Column(db.Text, default="")

    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    process = db.relationship("OeProcess", back_populates="steps")

    def to_dict(self):
        return {
            "id": self.id,
            "process_id": self.process_id,
            "step_number": self.step_number,
            "step_type": self.step_type,
            "step_name": self.step_name,
            "step_details": self.step_details,
            "responsibilities": self.responsibilities,
            "references": self.references,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }

    def __repr__(self):
        return f"<ProcessStep {self.step_number}: {self.step_name[:40]}>"


class StepOutcome(db.Model):
    """
    A labelled branch from a decision step to a target step.

    Stored as an explicit edge row; adjacency is resolved at read time.
    """

    __tablename__ = "step_outcomes"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    process_id = db.Column(
        db.String(36), db.ForeignKey("oe_processes.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    from_step_id = db.Column(
        db.String(36), db.ForeignKey("process_steps.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    to_step_id = db.Column(
        db.String(36), db.ForeignKey("process_steps.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    label = db.Column(db.String(255), nullable=True)
    priority = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)

    def to_dict(self):
        return {
            "id": self.id,
            "process_id": self.process_id,
            "from_step_id": self.from_step_id,
            "to_step_id": self.to_step_id,
            "label": self.label,
            "priority": self.priority,
        }


# ═════════════════════════════════════════════════════════════════════════════
#  PERFORMANCE MEASURE
# ═════════════════════════════════════════════════════════════════════════════

class PerformanceMeasure(db.Model):
    """A KPI attached to a process; the goal link is optional and weak."""

    __tablename__ = "performance_measures"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    process_id = db.Column(
        db.String(36), db.ForeignKey("oe_processes.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    strategic_goal_id = db.Column(
        db.String(36), db.ForeignKey("strategic_goals.id", ondelete="SET NULL"),
        nullable=True, index=True,
    )
    measure_name = db.Column(db.String(255), nullable=False)
    formula = db.Column(db.Text, default="")
    source = db.Column(db.String(255), default="")
    frequency = db.Column(db.String(100), default="")
    target = db.Column(db.String(100), default="")
    scorecard_category = db.Column(db.String(50), nullable=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    process = db.relationship("OeProcess", back_populates="measures")

    def to_dict(self):
        return {
            "id": self.id,
            "process_id": self.process_id,
            "strategic_goal_id": self.strategic_goal_id,
            "measure_name": self.measure_name,
            "formula": self.formula,
            "source": self.source,
            "frequency": self.frequency,
            "target": self.target,
            "scorecard_category": self.scorecard_category,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }

    def __repr__(self):
        return f"<PerformanceMeasure {self.measure_name[:40]}>"


# ═════════════════════════════════════════════════════════════════════════════
#  STRATEGIC GOAL
# ═════════════════════════════════════════════════════════════════════════════

class StrategicGoal(db.Model):
    """A target/current objective in one of the four scorecard categories."""

    __tablename__ = "strategic_goals"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    element_id = db.Column(
        db.String(36), db.ForeignKey("oe_elements.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    title = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, default="")
    target_value = db.Column(db.Float, nullable=False, default=0)
    current_value = db.Column(db.Float, nullable=False, default=0)
    unit = db.Column(db.String(50), default="")
    category = db.Column(db.String(50), nullable=False, default="Financial")
    priority = db.Column(db.String(10), nullable=False, default="Medium")

    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    element = db.relationship("OeElement", back_populates="goals")

    def to_dict(self):
        return {
            "id": self.id,
            "element_id": self.element_id,
            "title": self.title,
            "description": self.description,
            "target_value": self.target_value,
            "current_value": self.current_value,
            "unit": self.unit,
            "category": self.category,
            "priority": self.priority,
            "progress_pct": metric_percentage(self.current_value, self.target_value),
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }

    def __repr__(self):
        return f"<StrategicGoal {self.title[:40]}>"


class ElementPerformanceMetric(db.Model):
    """Element-level metric; ``percentage`` is derived from current/target."""

    __tablename__ = "element_performance_metrics"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    element_id = db.Column(
        db.String(36), db.ForeignKey("oe_elements.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    metric_name = db.Column(db.String(255), nullable=False)
    current_value = db.Column(db.Float, nullable=False, default=0)
    target_value = db.Column(db.Float, nullable=False, default=0)
    unit = db.Column(db.String(50), default="")
    trend = db.Column(db.String(10), nullable=False, default="stable")
    percentage = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    element = db.relationship("OeElement", back_populates="metrics")

    def recalculate_percentage(self):
        self.percentage = metric_percentage(self.current_value, self.target_value)

    def to_dict(self):
        return {
            "id": self.id,
            "element_id": self.element_id,
            "metric_name": self.metric_name,
            "current_value": self.current_value,
            "target_value": self.target_value,
            "unit": self.unit,
            "trend": self.trend,
            "percentage": self.percentage,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }
