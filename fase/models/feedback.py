"""
Feedback model — a supervisor's comment (and optional 1-5 rating) on a
supervisee's Big Rock or on their whole month plan.

A row targets exactly one of:
    - BIG_ROCK:       ``big_rock_id`` set, ``month`` NULL
    - MONTH_PLANNING: ``month`` set, ``big_rock_id`` NULL
"""

from fase.models import db, iso, utcnow

FEEDBACK_TARGETS = ("BIG_ROCK", "MONTH_PLANNING")
MIN_RATING, MAX_RATING = 1, 5


class Feedback(db.Model):
    __tablename__ = "feedback"
    __table_args__ = (
        db.UniqueConstraint("big_rock_id", name="uq_feedback_big_rock"),
        db.UniqueConstraint("user_id", "company_id", "month", name="uq_feedback_month"),
        db.CheckConstraint(
            "(target_type = 'BIG_ROCK' AND big_rock_id IS NOT NULL AND month IS NULL)"
            " OR (target_type = 'MONTH_PLANNING' AND big_rock_id IS NULL AND month IS NOT NULL)",
            name="ck_feedback_target",
        ),
        db.CheckConstraint(
            "rating IS NULL OR (rating >= 1 AND rating <= 5)", name="ck_feedback_rating",
        ),
    )

    id = db.Column(db.Integer, primary_key=True)
    target_type = db.Column(db.String(20), nullable=False, comment="BIG_ROCK | MONTH_PLANNING")
    big_rock_id = db.Column(
        db.Integer, db.ForeignKey("big_rocks.id", ondelete="CASCADE"), nullable=True,
    )
    month = db.Column(db.String(7), nullable=True, comment="YYYY-MM")
    user_id = db.Column(
        db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True,
        comment="Owner of the plan receiving the feedback",
    )
    company_id = db.Column(
        db.Integer, db.ForeignKey("companies.id", ondelete="CASCADE"), nullable=True,
    )
    supervisor_id = db.Column(
        db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True,
        comment="Author of the latest version",
    )
    comment = db.Column(db.Text, nullable=False)
    rating = db.Column(db.Integer, nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    big_rock = db.relationship(
        "BigRock",
        backref=db.backref("feedback", uselist=False, cascade="all, delete-orphan"),
    )
    supervisor = db.relationship("User", foreign_keys=[supervisor_id])

    def to_dict(self):
        return {
            "id": self.id,
            "targetType": self.target_type,
            "bigRockId": self.big_rock_id,
            "month": self.month,
            "userId": self.user_id,
            "companyId": self.company_id,
            "comment": self.comment,
            "rating": self.rating,
            "supervisor": self.supervisor.to_summary() if self.supervisor else None,
            "createdAt": iso(self.created_at),
            "updatedAt": iso(self.updated_at),
        }

    def __repr__(self):
        return f"<Feedback {self.id}: {self.target_type} user={self.user_id}>"
