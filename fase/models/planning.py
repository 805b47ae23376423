"""
Planning domain models.

Models:
    - BigRock: monthly strategic goal owned by a user inside a company.
    - TAR: sub-task of a Big Rock.
    - Activity: weekly/daily action under a TAR.
    - KeyMeeting: meeting tied to a Big Rock.
    - KeyPerson: stakeholder, many-to-many with TARs.
    - OpenMonth: a future month opened for planning (+ planning confirmation).
    - WeeklyReview: one retrospective per user/company/week.

Deleting a Big Rock removes its TARs, meetings and (through TARs) their
activities.
"""

from fase.models import db, iso, utcnow

# ── Constants ────────────────────────────────────────────────────────────────

BIG_ROCK_STATUSES = ("CREADO", "CONFIRMADO", "FEEDBACK_RECIBIDO", "EN_PROGRESO", "FINALIZADO")
FASE_CATEGORIES = ("FOCUS", "ATENCION", "SISTEMAS", "ENERGIA")
TAR_STATUSES = ("PENDIENTE", "EN_PROGRESO", "COMPLETADA")
ACTIVITY_TYPES = ("SEMANAL", "DIARIA")


tar_key_people = db.Table(
    "tar_key_people",
    db.Column("tar_id", db.Integer, db.ForeignKey("tars.id", ondelete="CASCADE"), primary_key=True),
    db.Column(
        "key_person_id", db.Integer,
        db.ForeignKey("key_people.id", ondelete="CASCADE"), primary_key=True,
    ),
)


class BigRock(db.Model):
    __tablename__ = "big_rocks"
    __table_args__ = (
        db.Index("idx_big_rocks_owner_month", "user_id", "month"),
        db.Index("idx_big_rocks_company_month", "company_id", "month"),
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    company_id = db.Column(
        db.Integer, db.ForeignKey("companies.id", ondelete="CASCADE"), nullable=True,
    )
    title = db.Column(db.String(100), nullable=False)
    description = db.Column(db.Text, nullable=False)
    indicator = db.Column(db.String(500), nullable=False)
    num_tars = db.Column(db.Integer, nullable=False)
    month = db.Column(db.String(7), nullable=False, comment="YYYY-MM")
    status = db.Column(db.String(30), nullable=False, default="CREADO")
    category = db.Column(db.String(20), nullable=True, comment="FOCUS | ATENCION | SISTEMAS | ENERGIA")
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    user = db.relationship("User")
    tars = db.relationship(
        "TAR", back_populates="big_rock", cascade="all, delete-orphan", order_by="TAR.id",
    )
    key_meetings = db.relationship(
        "KeyMeeting", back_populates="big_rock", cascade="all, delete-orphan",
        order_by="KeyMeeting.date",
    )

    def to_dict(self, include_children=False):
        d = {
            "id": self.id,
            "userId": self.user_id,
            "companyId": self.company_id,
            "title": self.title,
            "description": self.description,
            "indicator": self.indicator,
            "numTars": self.num_tars,
            "month": self.month,
            "status": self.status,
            "category": self.category,
            "createdAt": iso(self.created_at),
            "updatedAt": iso(self.updated_at),
            "tarCount": len(self.tars),
            "completedTars": sum(1 for t in self.tars if t.status == "COMPLETADA"),
        }
        if include_children:
            d["tars"] = [t.to_dict() for t in self.tars]
            d["keyMeetings"] = [m.to_dict() for m in self.key_meetings]
        return d

    def __repr__(self):
        return f"<BigRock {self.id}: {self.month} {self.title!r}>"


class TAR(db.Model):
    __tablename__ = "tars"

    id = db.Column(db.Integer, primary_key=True)
    big_rock_id = db.Column(
        db.Integer, db.ForeignKey("big_rocks.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    description = db.Column(db.Text, nullable=False)
    status = db.Column(db.String(20), nullable=False, default="PENDIENTE")
    progress = db.Column(db.Integer, nullable=False, default=0)
    # set on the first move into COMPLETADA; reopening keeps it
    completion_credited = db.Column(db.Boolean, nullable=False, default=False)
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    big_rock = db.relationship("BigRock", back_populates="tars")
    activities = db.relationship(
        "Activity", back_populates="tar", cascade="all, delete-orphan", order_by="Activity.date",
    )
    key_people = db.relationship("KeyPerson", secondary=tar_key_people, back_populates="tars")

    def to_dict(self, include_activities=False):
        d = {
            "id": self.id,
            "bigRockId": self.big_rock_id,
            "description": self.description,
            "status": self.status,
            "progress": self.progress,
            "keyPeople": [p.to_summary() for p in self.key_people],
            "createdAt": iso(self.created_at),
            "updatedAt": iso(self.updated_at),
        }
        if include_activities:
            d["activities"] = [a.to_dict() for a in self.activities]
        return d


class Activity(db.Model):
    __tablename__ = "activities"
    __table_args__ = (
        db.Index("idx_activities_date", "date"),
        db.Index("idx_activities_week", "week"),
    )

    id = db.Column(db.Integer, primary_key=True)
    tar_id = db.Column(
        db.Integer, db.ForeignKey("tars.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    title = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text)
    type = db.Column(db.String(10), nullable=False, comment="SEMANAL | DIARIA")
    date = db.Column(db.Date, nullable=False)
    week = db.Column(db.String(8), comment="YYYY-Wnn")
    completed = db.Column(db.Boolean, nullable=False, default=False)
    notes = db.Column(db.Text)
    credited_on = db.Column(db.Date, comment="last day completing this counted as a daily log")
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    tar = db.relationship("TAR", back_populates="activities")

    def to_dict(self):
        return {
            "id": self.id,
            "tarId": self.tar_id,
            "title": self.title,
            "description": self.description,
            "type": self.type,
            "date": iso(self.date),
            "week": self.week,
            "completed": self.completed,
            "notes": self.notes,
            "createdAt": iso(self.created_at),
        }


class KeyMeeting(db.Model):
    __tablename__ = "key_meetings"

    id = db.Column(db.Integer, primary_key=True)
    big_rock_id = db.Column(
        db.Integer, db.ForeignKey("big_rocks.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    title = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text)
    date = db.Column(db.DateTime, nullable=False, index=True)
    completed = db.Column(db.Boolean, nullable=False, default=False)
    outcome = db.Column(db.Text)
    objective = db.Column(db.Text)
    expected_decision = db.Column(db.Text)
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    big_rock = db.relationship("BigRock", back_populates="key_meetings")

    def to_dict(self):
        return {
            "id": self.id,
            "bigRockId": self.big_rock_id,
            "title": self.title,
            "description": self.description,
            "date": iso(self.date),
            "completed": self.completed,
            "outcome": self.outcome,
            "objective": self.objective,
            "expectedDecision": self.expected_decision,
            "createdAt": iso(self.created_at),
        }


class KeyPerson(db.Model):
    __tablename__ = "key_people"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(
        db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    company_id = db.Column(
        db.Integer, db.ForeignKey("companies.id", ondelete="CASCADE"), nullable=True,
    )
    first_name = db.Column(db.String(50), nullable=False)
    last_name = db.Column(db.String(50), nullable=False)
    role = db.Column(db.String(100))
    contact = db.Column(db.String(200))
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    tars = db.relationship("TAR", secondary=tar_key_people, back_populates="key_people")

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    def to_summary(self):
        return {"id": self.id, "firstName": self.first_name, "lastName": self.last_name}

    def to_dict(self):
        return {
            "id": self.id,
            "userId": self.user_id,
            "companyId": self.company_id,
            "firstName": self.first_name,
            "lastName": self.last_name,
            "role": self.role,
            "contact": self.contact,
            "tarCount": len(self.tars),
            "createdAt": iso(self.created_at),
        }


class OpenMonth(db.Model):
    """Future month unlocked for planning by its owner."""

    __tablename__ = "open_months"
    __table_args__ = (
        db.UniqueConstraint("user_id", "month", name="uq_open_month_user_month"),
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    month = db.Column(db.String(7), nullable=False)
    is_planning_confirmed = db.Column(db.Boolean, nullable=False, default=False)
    planning_confirmed_at = db.Column(db.DateTime(timezone=True))
    opened_at = db.Column(db.DateTime(timezone=True), default=utcnow)

    def to_dict(self):
        return {
            "month": self.month,
            "userId": self.user_id,
            "isPlanningConfirmed": self.is_planning_confirmed,
            "planningConfirmedAt": iso(self.planning_confirmed_at),
            "openedAt": iso(self.opened_at),
        }


class WeeklyReview(db.Model):
    __tablename__ = "weekly_reviews"
    __table_args__ = (
        db.UniqueConstraint("user_id", "company_id", "week", name="uq_weekly_review_user_week"),
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id", ondelete="CASCADE"))
    week = db.Column(db.String(8), nullable=False)
    accomplishments = db.Column(db.Text)
    blockers = db.Column(db.Text)
    learnings = db.Column(db.Text)
    next_week_focus = db.Column(db.Text)
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow)

    def to_dict(self):
        return {
            "id": self.id,
            "userId": self.user_id,
            "companyId": self.company_id,
            "week": self.week,
            "accomplishments": self.accomplishments,
            "blockers": self.blockers,
            "learnings": self.learnings,
            "nextWeekFocus": self.next_week_focus,
            "createdAt": iso(self.created_at),
        }
