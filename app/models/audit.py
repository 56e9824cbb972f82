"""
OE Framework Manager
Audit and attachment models.

Models:
    - ActivityLog: append-only trail of create/update/delete events
    - DocumentVersion: numbered revision record attached to a process
    - ProcessDocument: attachment metadata for a process (bytes live elsewhere)
"""

import uuid
from datetime import UTC, datetime

from app.models import db

# ── Constants ────────────────────────────────────────────────────────────────

ACTIVITY_ENTITY_TYPES = {"element", "process", "goal", "measure", "step", "document"}
ACTIVITY_ACTIONS = {"created", "updated", "deleted"}


def _uuid():
    return str(uuid.uuid4())


def _utcnow():
    return datetime.now(UTC)


class ActivityLog(db.Model):
    """
    One row per user-visible change.

    ``entity_id`` is kept as a plain string so the row survives the
    deletion of the entity it describes.
    """

    __tablename__ = "activity_log"
    __table_args__ = (
        db.Index("idx_activity_entity", "entity_type", "entity_id"),
        db.Index("idx_activity_created", "created_at"),
    )

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    user_id = db.Column(db.String(100), nullable=False, default="system")
    action = db.Column(db.String(30), nullable=False, comment="created | updated | deleted")
    entity_type = db.Column(db.String(30), nullable=False)
    entity_id = db.Column(db.String(36), nullable=False)
    entity_name = db.Column(db.String(255), default="")
    description = db.Column(db.Text, default="")
    metadata_json = db.Column(db.JSON, default=dict)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "action": self.action,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "entity_name": self.entity_name,
            "description": self.description,
            "metadata": self.metadata_json or {},
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f"<ActivityLog {self.action} {self.entity_type}/{self.entity_id}>"


class DocumentVersion(db.Model):
    """A numbered revision of a process document; numbers grow per process."""

    __tablename__ = "document_versions"
    __table_args__ = (
        db.UniqueConstraint("process_id", "version_number", name="uq_docver_process_number"),
    )

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    process_id = db.Column(
        db.String(36), db.ForeignKey("oe_processes.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    version_number = db.Column(db.Integer, nullable=False)
    change_log = db.Column(db.Text, default="")
    approved_by = db.Column(db.String(100), nullable=True)
    approved_at = db.Column(db.DateTime(timezone=True), nullable=True)
    created_by = db.Column(db.String(100), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "process_id": self.process_id,
            "version_number": self.version_number,
            "change_log": self.change_log,
            "approved_by": self.approved_by,
            "approved_at": self.approved_at.isoformat() if self.approved_at else None,
            "created_by": self.created_by,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


class ProcessDocument(db.Model):
    """Attachment metadata; the file itself is held by external object storage."""

    __tablename__ = "process_documents"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    process_id = db.Column(
        db.String(36), db.ForeignKey("oe_processes.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    file_name = db.Column(db.String(255), nullable=False)
    file_url = db.Column(db.String(1000), nullable=False)
    file_size = db.Column(db.Integer, nullable=True)
    mime_type = db.Column(db.String(100), nullable=True)
    uploaded_by = db.Column(db.String(100), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "process_id": self.process_id,
            "file_name": self.file_name,
            "file_url": self.file_url,
            "file_size": self.file_size,
            "mime_type": self.mime_type,
            "uploaded_by": self.uploaded_by,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


# ── Convenience writer ───────────────────────────────────────────────────────

def log_activity(
    *,
    action: str,
    entity_type: str,
    entity_id: str,
    entity_name: str = "",
    user_id: str = "system",
    description: str | None = None,
    metadata: dict | None = None,
) -> ActivityLog:
    """
    Append a single activity row.  Uses ``flush`` so callers keep
    transaction control.

    Returns the (flushed) ActivityLog instance.
    """
    if description is None:
        description = f'{action.capitalize()} {entity_type} "{entity_name}"'
    entry = ActivityLog(
        user_id=user_id or "system",
        action=action,
        entity_type=entity_type,
        entity_id=str(entity_id),
        entity_name=entity_name or "",
        description=description,
        metadata_json=metadata or {},
    )
    db.session.add(entry)
    db.session.flush()
    return entry
