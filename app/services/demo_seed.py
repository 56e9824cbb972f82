"""Demo framework content for local development and walkthroughs.

Four elements (OE-1, OE-3, OE-4, OE-5) with processes, steps, measures in
every scorecard category, strategic goals and element metrics.  Process
numbers deliberately include ``OE-1.10`` to show natural ordering.
"""
import logging

from sqlalchemy import func, select

from app.models import db
from app.models.framework import (
    ElementPerformanceMetric,
    OeElement,
    OeProcess,
    PerformanceMeasure,
    ProcessStep,
    StepOutcome,
    StrategicGoal,
)

logger = logging.getLogger(__name__)

ELEMENTS = [
    {
        "element_number": 1, "title": "Transition Plan", "icon": "route", "color": "blue",
        "description": "Plan and govern the transfer of operations to the new operator.",
        "enabling_elements": ["Asset Management"],
    },
    {
        "element_number": 3, "title": "Purification Plant Operations", "icon": "droplet", "color": "teal",
        "description": "Operate treatment plants safely, reliably and to quality targets.",
        "enabling_elements": ["Transition Plan", "Asset Management"],
    },
    {
        "element_number": 4, "title": "Asset Management", "icon": "wrench", "color": "amber",
        "description": "Keep plant assets fit for purpose over their full life cycle.",
    },
    {
        "element_number": 5, "title": "Strategic Localization", "icon": "users", "color": "purple",
        "description": "Build local workforce capability and supplier base.",
    },
]

# (element_number, process_number, name, status, risk_frequency, risk_impact)
PROCESSES = [
    (1, "OE-1.1", "Transition Governance", "active", "Medium", "High"),
    (1, "OE-1.2", "Knowledge Transfer", "active", "Low", "Medium"),
    (1, "OE-1.10", "Transition Close-out", "draft", None, None),
    (3, "OE-3.1", "Water Quality Monitoring", "active", "High", "High"),
    (3, "OE-3.2", "Chemical Dosing Control", "review", "Medium", "Medium"),
    (4, "OE-4.1", "Preventive Maintenance", "active", "Medium", "Low"),
    (5, "OE-5.1", "Workforce Development", "review", "Low", "Low"),
]

STEPS = [
    ("start", "Initiate", "Raise the request and confirm scope."),
    ("task", "Prepare", "Collect inputs and assign responsibilities."),
    ("decision", "Review", "Approve the result or return it for rework."),
    ("end", "Close", "Record outcomes and archive evidence."),
]

# (process_number, measure_name, category, target, frequency)
MEASURES = [
    ("OE-1.1", "Transition milestones on time", "Internal Process", ">= 95%", "Monthly"),
    ("OE-1.1", "Transition budget variance", "Financial", "<= 5%", "Quarterly"),
    ("OE-1.2", "Staff trained on handover", "Learning & Growth", "100%", "Monthly"),
    ("OE-3.1", "Samples within specification", "Customer", ">= 99.5%", "Weekly"),
    ("OE-3.1", "Customer complaints", "Customer", "< 5 per month", "Monthly"),
    ("OE-3.2", "Chemical cost per m3", "Financial", "<= 0.12", "Monthly"),
    ("OE-4.1", "PM compliance", "Internal Process", ">= 90%", "Monthly"),
    ("OE-5.1", "Local hires in key roles", "Learning & Growth", ">= 60%", "Quarterly"),
]

# (element_number, title, category, priority, target, current, unit, linked measure names)
GOALS = [
    (3, "Deliver compliant water", "Customer", "High", 99.5, 99.1, "%",
     ["Samples within specification", "Customer complaints"]),
    (1, "Control transition cost", "Financial", "High", 5, 3.2, "%",
     ["Transition budget variance", "Chemical cost per m3"]),
    (4, "Reliable assets", "Internal Process", "Medium", 90, 84, "%",
     ["PM compliance", "Transition milestones on time"]),
    (5, "Capable local workforce", "Learning & Growth", "Medium", 60, 41, "%",
     ["Local hires in key roles", "Staff trained on handover"]),
]

METRICS = [
    (3, "Plant availability", 97.0, 98.0, "%", "up"),
    (4, "Mean time between failures", 410.0, 500.0, "h", "stable"),
]


def seed_demo_data():
    """Insert the demo framework unless elements already exist.

    Returns:
        dict of created row counts (empty when skipped).
    """
    if db.session.execute(select(func.count(OeElement.id))).scalar():
        logger.info("Demo seed skipped: elements already present")
        return {}

    elements = {}
    for data in ELEMENTS:
        element = OeElement(**{k: v for k, v in data.items() if k != "enabling_elements"})
        element.set_enabling_elements(data.get("enabling_elements"))
        db.session.add(element)
        elements[data["element_number"]] = element
    db.session.flush()

    processes = {}
    for element_number, number, name, status, freq, impact in PROCESSES:
        process = OeProcess(
            element_id=elements[element_number].id,
            process_number=number,
            name=name,
            status=status,
            process_owner="Operations Manager",
            description=f"{name} for element OE-{element_number}.",
            risk_frequency=freq,
            risk_impact=impact,
        )
        db.session.add(process)
        processes[number] = process
    db.session.flush()

    step_count = 0
    for process in processes.values():
        steps = []
        for i, (step_type, step_name, details) in enumerate(STEPS, 1):
            step = ProcessStep(
                process_id=process.id, step_number=i, step_type=step_type,
                step_name=step_name, step_details=details,
                responsibilities=process.process_owner,
            )
            db.session.add(step)
            steps.append(step)
        db.session.flush()
        step_count += len(steps)
        start, prepare, review, close = steps
        db.session.add_all([
            StepOutcome(process_id=process.id, from_step_id=start.id, to_step_id=prepare.id),
            StepOutcome(process_id=process.id, from_step_id=prepare.id, to_step_id=review.id),
            StepOutcome(process_id=process.id, from_step_id=review.id, to_step_id=close.id,
                        label="Approved", priority=0),
            StepOutcome(process_id=process.id, from_step_id=review.id, to_step_id=prepare.id,
                        label="Rework", priority=1),
        ])

    measures = {}
    for number, name, category, target, frequency in MEASURES:
        measure = PerformanceMeasure(
            process_id=processes[number].id, measure_name=name,
            scorecard_category=category, target=target, frequency=frequency,
            source="Operations reporting",
        )
        db.session.add(measure)
        measures[name] = measure
    db.session.flush()

    for element_number, title, category, priority, target, current, unit, linked in GOALS:
        goal = StrategicGoal(
            element_id=elements[element_number].id, title=title, category=category,
            priority=priority, target_value=target, current_value=current, unit=unit,
        )
        db.session.add(goal)
        db.session.flush()
        for name in linked:
            measures[name].strategic_goal_id = goal.id

    for element_number, name, current, target, unit, trend in METRICS:
        metric = ElementPerformanceMetric(
            element_id=elements[element_number].id, metric_name=name,
            current_value=current, target_value=target, unit=unit, trend=trend,
        )
        metric.recalculate_percentage()
        db.session.add(metric)

    db.session.flush()
    created = {
        "elements": len(elements),
        "processes": len(processes),
        "steps": step_count,
        "measures": len(measures),
        "goals": len(GOALS),
        "metrics": len(METRICS),
    }
    logger.info("Demo framework seeded: %s", created)
    return created
