"""Process service layer — processes and everything they own.

Transaction policy: methods use flush() for ID generation, never commit().
Caller (route handler) is responsible for db.session.commit().

Covers:
- Process CRUD (filters + natural ordering, full replace of steps/measures on PUT)
- Step, outcome, measure CRUD
- Document versions (auto-numbered) and attachment metadata
- Decision graph and the single-process export view
"""
import logging
from datetime import datetime, timezone

from sqlalchemy import func, or_, select

from app.core.exceptions import ConflictError, NotFoundError, ValidationError
from app.models import db
from app.models.audit import DocumentVersion, ProcessDocument, log_activity
from app.models.framework import (
    PROCESS_STATUSES,
    RISK_RATINGS,
    SCORECARD_CATEGORIES,
    STEP_TYPES,
    OeElement,
    OeProcess,
    PerformanceMeasure,
    ProcessStep,
    StepOutcome,
    StrategicGoal,
)
from app.services.process_graph import build_process_graph
from app.utils.helpers import coerce_bool, coerce_int, coerce_text, parse_date
from app.utils.natural_sort import natural_sorted

logger = logging.getLogger(__name__)

_PROCESS_TEXT_FIELDS = (
    "name", "description", "process_owner", "expectations", "responsibilities",
    "inputs", "deliverables", "quality_criticality", "process_steps_content",
    "performance_measure_content", "risk_description", "risk_mitigation",
)
_STEP_FIELDS = ("step_name", "step_details", "responsibilities", "references")
_MEASURE_FIELDS = ("measure_name", "formula", "source", "frequency", "target")


# ── Lookups ──────────────────────────────────────────────────────────────


def _get(model, pk, label):
    obj = db.session.get(model, pk)
    if obj is None:
        raise NotFoundError(resource=label, resource_id=pk)
    return obj


def get_process(process_id):
    return _get(OeProcess, process_id, "OeProcess")


def get_step(step_id):
    return _get(ProcessStep, step_id, "ProcessStep")


def get_measure(measure_id):
    return _get(PerformanceMeasure, measure_id, "PerformanceMeasure")


def get_outcome(outcome_id):
    return _get(StepOutcome, outcome_id, "StepOutcome")


def get_document(document_id):
    return _get(ProcessDocument, document_id, "ProcessDocument")


# ── Validation ───────────────────────────────────────────────────────────


def _check_choice(data, field, choices, errors):
    value = data.get(field)
    if value in (None, ""):
        return
    if value not in choices:
        errors[field] = f"must be one of: {', '.join(choices)}"


def _process_values(data, required=False):
    """Validate and type the process fields present in *data*.

    Returns ``{field: value}`` for the text, ``is_mandatory`` and
    ``revision`` fields given. ``process_number`` and ``name`` come back
    stripped and are checked even when absent if *required*.
    """
    errors = {}
    _check_choice(data, "status", PROCESS_STATUSES, errors)
    _check_choice(data, "risk_frequency", RISK_RATINGS, errors)
    _check_choice(data, "risk_impact", RISK_RATINGS, errors)
    values = {}
    for field in ("process_number", "name"):
        if required or field in data:
            values[field] = coerce_text(data, field, errors).strip()
            if not values[field]:
                errors.setdefault(field, "required")
    for field in _PROCESS_TEXT_FIELDS:
        if field != "name" and field in data:
            values[field] = coerce_text(data, field, errors)
    if "is_mandatory" in data:
        values["is_mandatory"] = coerce_bool(data, "is_mandatory", errors)
    if "revision" in data:
        values["revision"] = coerce_int(data, "revision", errors, default=1) or 1
    for field in ("steps", "measures"):
        rows = data.get(field)
        if rows is not None and not (
            isinstance(rows, list) and all(isinstance(row, dict) for row in rows)
        ):
            errors[field] = "must be a list of objects"
    if errors:
        raise ValidationError("Invalid process data", details=errors)
    return values


def _require_element(element_id):
    if not isinstance(element_id, str) or db.session.get(OeElement, element_id) is None:
        raise ValidationError(
            "element_id does not reference an existing element",
            details={"element_id": "not found"},
        )


def _ensure_process_number_free(process_number, exclude_id=None):
    existing = db.session.execute(
        select(OeProcess.id).where(OeProcess.process_number == process_number)
    ).scalar_one_or_none()
    if existing is not None and existing != exclude_id:
        raise ConflictError(resource="OeProcess", field="process_number", value=process_number)


def _resolve_goal_id(value):
    """Return a goal id or None; ``"none"``/blank mean no goal."""
    if value in (None, "", "none"):
        return None
    if not isinstance(value, str) or db.session.get(StrategicGoal, value) is None:
        raise ValidationError(
            "strategic_goal_id does not reference an existing goal",
            details={"strategic_goal_id": "not found"},
        )
    return value


def _clean_category(value):
    """Strip a scorecard category; blank means uncategorised.

    Categories outside SCORECARD_CATEGORIES are kept and reported in the
    scorecard's Other bucket.
    """
    value = (value or "").strip()
    if value and value not in SCORECARD_CATEGORIES:
        logger.info("Measure saved with non-standard scorecard category %r", value)
    return value or None


def _coerce_step_number(value):
    if isinstance(value, bool):
        raise ValidationError("step_number must be an integer", details={"step_number": "invalid"})
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ValidationError(
            "step_number must be an integer", details={"step_number": "invalid"},
        ) from exc


# ── Process ──────────────────────────────────────────────────────────────


def list_processes(element_id=None, status=None, search=None):
    """Return process dicts (with element summary) in natural number order."""
    stmt = select(OeProcess)
    if element_id:
        stmt = stmt.where(OeProcess.element_id == element_id)
    if status:
        stmt = stmt.where(OeProcess.status == status)
    if search:
        like = f"%{search}%"
        stmt = stmt.where(or_(
            OeProcess.name.ilike(like),
            OeProcess.process_number.ilike(like),
            OeProcess.description.ilike(like),
        ))
    processes = db.session.execute(stmt).scalars().all()

    element_ids = {p.element_id for p in processes}
    elements = {}
    if element_ids:
        elements = {
            e.id: e for e in db.session.execute(
                select(OeElement).where(OeElement.id.in_(element_ids))
            ).scalars().all()
        }

    step_counts = dict(db.session.execute(
        select(ProcessStep.process_id, func.count(ProcessStep.id)).group_by(ProcessStep.process_id)
    ).all())
    measure_counts = dict(db.session.execute(
        select(PerformanceMeasure.process_id, func.count(PerformanceMeasure.id))
        .group_by(PerformanceMeasure.process_id)
    ).all())

    result = []
    for process in natural_sorted(processes, key=lambda p: p.process_number):
        row = process.to_dict()
        element = elements.get(process.element_id)
        row["element"] = (
            {"id": element.id, "element_number": element.element_number, "title": element.title}
            if element else None
        )
        row["step_count"] = step_counts.get(process.id, 0)
        row["measure_count"] = measure_counts.get(process.id, 0)
        result.append(row)
    return result


def get_process_detail(process):
    """Process dict with element, ordered steps, measures, outcomes and versions."""
    data = process.to_dict()
    element = process.element
    data["element"] = element.to_dict() if element else None
    data["steps"] = [
        s.to_dict() for s in sorted(process.steps, key=lambda s: s.step_number or 0)
    ]
    data["measures"] = [
        m.to_dict() for m in sorted(process.measures, key=lambda m: m.measure_name or "")
    ]
    data["outcomes"] = [o.to_dict() for o in process.outcomes]
    data["versions"] = [
        v.to_dict() for v in sorted(process.versions, key=lambda v: v.version_number, reverse=True)
    ]
    return data


def create_process(data, user_id="system"):
    """Create a process under an existing element.

    Returns:
        OeProcess instance (already flushed).
    """
    values = _process_values(data, required=True)
    element_id = data.get("element_id")
    _require_element(element_id)
    _ensure_process_number_free(values["process_number"])
    values.setdefault("is_mandatory", False)
    values.setdefault("revision", 1)

    process = OeProcess(
        element_id=element_id,
        status=data.get("status") or "draft",
        issue_date=parse_date(data.get("issue_date")),
        risk_frequency=data.get("risk_frequency") or None,
        risk_impact=data.get("risk_impact") or None,
        created_by=user_id,
        **values,
    )
    db.session.add(process)
    db.session.flush()

    log_activity(
        action="created", entity_type="process", entity_id=process.id,
        entity_name=process.name, user_id=user_id,
        description=f'Created process "{process.name}"',
    )
    logger.info("Process created id=%s number=%s", process.id, process.process_number)
    return process


def patch_process(process, data, user_id="system"):
    """Partial update of process fields only. Returns the updated OeProcess."""
    values = _process_values(data)

    if "element_id" in data and data["element_id"] != process.element_id:
        _require_element(data["element_id"])
        process.element_id = data["element_id"]

    if "process_number" in values:
        _ensure_process_number_free(values["process_number"], exclude_id=process.id)

    for field, value in values.items():
        setattr(process, field, value)
    if "status" in data:
        process.status = data["status"] or "draft"
    if "issue_date" in data:
        process.issue_date = parse_date(data["issue_date"])
    for field in ("risk_frequency", "risk_impact"):
        if field in data:
            setattr(process, field, data[field] or None)

    db.session.flush()
    log_activity(
        action="updated", entity_type="process", entity_id=process.id,
        entity_name=process.name, user_id=user_id,
    )
    return process


def update_process(process, data, user_id="system"):
    """Full update: process fields plus replacement of steps and measures.

    ``steps`` / ``measures`` lists, when present, replace the existing rows
    entirely (outcomes of removed steps go with them).
    """
    patch_process(process, data, user_id=user_id)

    if "steps" in data:
        for outcome in list(process.outcomes):
            db.session.delete(outcome)
        db.session.flush()
        for step in list(process.steps):
            db.session.delete(step)
        db.session.flush()
        for step_data in data.get("steps") or []:
            create_step(process, step_data)

    if "measures" in data:
        for measure in list(process.measures):
            db.session.delete(measure)
        db.session.flush()
        for measure_data in data.get("measures") or []:
            create_measure(process, measure_data)

    db.session.flush()
    return process


def delete_process(process, user_id="system"):
    process_id, name = process.id, process.name
    db.session.delete(process)
    db.session.flush()
    log_activity(
        action="deleted", entity_type="process", entity_id=process_id,
        entity_name=name, user_id=user_id,
        description=f'Deleted process "{name}"',
    )
    logger.info("Process deleted id=%s", process_id)


# ── Steps ────────────────────────────────────────────────────────────────


def list_steps(process):
    return [s.to_dict() for s in sorted(process.steps, key=lambda s: s.step_number or 0)]


def _step_values(data, partial=False):
    errors = {}
    _check_choice(data, "step_type", STEP_TYPES, errors)
    values = {
        field: coerce_text(data, field, errors)
        for field in _STEP_FIELDS
        if not partial or field in data
    }
    if errors:
        raise ValidationError("Invalid step data", details=errors)
    if "step_name" in values:
        values["step_name"] = values["step_name"].strip() or "Untitled Step"
    return values


def create_step(process, data):
    values = _step_values(data)
    step = ProcessStep(
        process_id=process.id,
        step_number=_coerce_step_number(
            1 if data.get("step_number") in (None, "") else data["step_number"]
        ),
        step_type=data.get("step_type") or "task",
        **values,
    )
    db.session.add(step)
    db.session.flush()
    return step


def update_step(step, data):
    values = _step_values(data, partial=True)
    if "step_number" in data:
        step.step_number = _coerce_step_number(data["step_number"])
    if "step_type" in data:
        step.step_type = data["step_type"] or "task"
    for field, value in values.items():
        setattr(step, field, value)
    db.session.flush()
    return step


def delete_step(step):
    db.session.delete(step)
    db.session.flush()


# ── Outcomes (decision edges) ────────────────────────────────────────────


def create_outcome(process, data):
    """Add a decision edge between two steps of *process*."""
    step_ids = {s.id for s in process.steps}
    errors = {}
    for field in ("from_step_id", "to_step_id"):
        value = data.get(field)
        if not isinstance(value, str) or value not in step_ids:
            errors[field] = "must reference a step of this process"
    label = coerce_text(data, "label", errors, default=None)
    priority = coerce_int(data, "priority", errors, default=0)
    if errors:
        raise ValidationError("Invalid outcome", details=errors)

    outcome = StepOutcome(
        process_id=process.id,
        from_step_id=data["from_step_id"],
        to_step_id=data["to_step_id"],
        label=label,
        priority=priority,
    )
    db.session.add(outcome)
    db.session.flush()
    return outcome


def delete_outcome(outcome):
    db.session.delete(outcome)
    db.session.flush()


def get_process_graph(process):
    """Decision-flow graph for *process* (see ``build_process_graph``)."""
    steps = db.session.execute(
        select(ProcessStep).where(ProcessStep.process_id == process.id)
    ).scalars().all()
    outcomes = db.session.execute(
        select(StepOutcome).where(StepOutcome.process_id == process.id)
    ).scalars().all()
    return build_process_graph([s.to_dict() for s in steps], [o.to_dict() for o in outcomes])


# ── Measures ─────────────────────────────────────────────────────────────


def list_measures(process):
    return [m.to_dict() for m in sorted(process.measures, key=lambda m: m.measure_name or "")]


def _measure_values(data, partial=False):
    """Typed text fields of a measure; ``scorecard_category`` cleaned."""
    errors = {}
    values = {
        field: coerce_text(data, field, errors)
        for field in _MEASURE_FIELDS
        if not partial or field in data
    }
    if not partial or "scorecard_category" in data:
        values["scorecard_category"] = _clean_category(
            coerce_text(data, "scorecard_category", errors)
        )
    if errors:
        raise ValidationError("Invalid measure data", details=errors)
    if "measure_name" in values:
        values["measure_name"] = values["measure_name"].strip() or "Untitled Measure"
    return values


def create_measure(process, data):
    values = _measure_values(data)
    measure = PerformanceMeasure(
        process_id=process.id,
        strategic_goal_id=_resolve_goal_id(data.get("strategic_goal_id")),
        **values,
    )
    db.session.add(measure)
    db.session.flush()
    return measure


def update_measure(measure, data):
    for field, value in _measure_values(data, partial=True).items():
        setattr(measure, field, value)
    if "strategic_goal_id" in data:
        measure.strategic_goal_id = _resolve_goal_id(data["strategic_goal_id"])
    db.session.flush()
    return measure


def delete_measure(measure):
    db.session.delete(measure)
    db.session.flush()


# ── Versions & documents ─────────────────────────────────────────────────


def list_versions(process):
    return [
        v.to_dict() for v in sorted(process.versions, key=lambda v: v.version_number, reverse=True)
    ]


def create_version(process, data, user_id="system"):
    """Record the next document version for *process* and bump its revision."""
    errors = {}
    change_log = coerce_text(data, "change_log", errors)
    approved_by = coerce_text(data, "approved_by", errors, default=None)
    if errors:
        raise ValidationError("Invalid version data", details=errors)
    current = db.session.execute(
        select(func.max(DocumentVersion.version_number))
        .where(DocumentVersion.process_id == process.id)
    ).scalar()
    version = DocumentVersion(
        process_id=process.id,
        version_number=(current or 0) + 1,
        change_log=change_log,
        approved_by=approved_by or None,
        created_by=user_id,
    )
    if version.approved_by:
        version.approved_at = datetime.now(timezone.utc)
    db.session.add(version)
    process.revision = version.version_number
    db.session.flush()
    return version


def list_documents(process):
    return [d.to_dict() for d in sorted(process.documents, key=lambda d: d.created_at, reverse=True)]


def create_document(process, data, user_id="system"):
    errors = {}
    values = {}
    for field in ("file_name", "file_url"):
        values[field] = coerce_text(data, field, errors).strip()
        if not values[field]:
            errors.setdefault(field, "required")
    values["file_size"] = coerce_int(data, "file_size", errors)
    values["mime_type"] = coerce_text(data, "mime_type", errors, default=None)
    if errors:
        raise ValidationError("Invalid document data", details=errors)

    document = ProcessDocument(process_id=process.id, uploaded_by=user_id, **values)
    db.session.add(document)
    db.session.flush()
    log_activity(
        action="created", entity_type="document", entity_id=document.id,
        entity_name=document.file_name, user_id=user_id,
        description=f'Attached "{document.file_name}" to process {process.process_number}',
    )
    return document


def delete_document(document):
    db.session.delete(document)
    db.session.flush()
