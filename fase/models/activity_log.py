"""
FASE Platform
Activity log domain model.

Models:
    - ActivityLog: immutable, append-only trail of create/update/delete
      events on planning entities, queried by the activity log service.
"""

from fase.models import db, iso, utcnow

# ── Constants ────────────────────────────────────────────────────────────────

LOG_ACTIONS = ("CREATE", "UPDATE", "DELETE")
LOG_ENTITY_TYPES = ("BIG_ROCK", "TAR", "ACTIVITY", "KEY_MEETING", "KEY_PERSON")


class ActivityLog(db.Model):
    """
    One row per mutation of a planning entity.

    ``entity_title`` is a snapshot taken when the row is written so that the
    trail stays readable after the entity is deleted.
    """

    __tablename__ = "activity_logs"
    __table_args__ = (
        db.Index("idx_activity_logs_user_ts", "user_id", "timestamp"),
        db.Index("idx_activity_logs_company_ts", "company_id", "timestamp"),
        db.Index("idx_activity_logs_entity", "entity_type", "entity_id"),
    )

    id = db.Column(db.Integer, primary_key=True)
    action = db.Column(db.String(10), nullable=False, comment="CREATE | UPDATE | DELETE")
    entity_type = db.Column(db.String(20), nullable=False)
    entity_id = db.Column(db.Integer, nullable=False)
    entity_title = db.Column(db.String(200))
    description = db.Column(db.String(500))
    log_metadata = db.Column("metadata", db.JSON)
    user_id = db.Column(
        db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False,
    )
    company_id = db.Column(
        db.Integer, db.ForeignKey("companies.id", ondelete="SET NULL"), nullable=True,
    )
    timestamp = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    user = db.relationship("User")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "action": self.action,
            "entityType": self.entity_type,
            "entityId": self.entity_id,
            "entityTitle": self.entity_title,
            "description": self.description,
            "metadata": self.log_metadata,
            "userId": self.user_id,
            "companyId": self.company_id,
            "user": self.user.to_summary() if self.user else None,
            "createdAt": iso(self.timestamp),
        }

    def __repr__(self):
        return f"<ActivityLog {self.id}: {self.action} {self.entity_type}/{self.entity_id}>"


# ── Convenience writer ───────────────────────────────────────────────────────

def write_activity_log(
    *,
    action: str,
    entity_type: str,
    entity_id: int,
    user_id: int,
    company_id: int | None = None,
    entity_title: str | None = None,
    description: str | None = None,
    metadata: dict | None = None,
) -> ActivityLog:
    """
    Append a single log row.  Uses ``flush`` so callers keep
    transaction control: the row commits or rolls back with the mutation.
    """
    if action not in LOG_ACTIONS:
        raise ValueError(f"Unknown activity log action {action!r}")
    if entity_type not in LOG_ENTITY_TYPES:
        raise ValueError(f"Unknown activity log entity type {entity_type!r}")
    row = ActivityLog(
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        entity_title=(entity_title or "")[:200] or None,
        description=(description or "")[:500] or None,
        log_metadata=metadata,
        user_id=user_id,
        company_id=company_id,
    )
    db.session.add(row)
    db.session.flush()
    return row
