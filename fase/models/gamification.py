"""
Gamification models — per-user points/streak aggregate and earned medals.
"""

from fase.models import db, iso, utcnow

MEDAL_TYPES = ("CONSTANCIA", "CLARIDAD", "EJECUCION", "MEJORA_CONTINUA")
MEDAL_LEVELS = ("BRONCE", "PLATA", "ORO", "DIAMANTE")


class Gamification(db.Model):
    __tablename__ = "gamification"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(
        db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False,
    )
    points = db.Column(db.Integer, nullable=False, default=0)
    level = db.Column(db.Integer, nullable=False, default=1)
    current_streak = db.Column(db.Integer, nullable=False, default=0)
    longest_streak = db.Column(db.Integer, nullable=False, default=0)
    last_streak_date = db.Column(db.Date, nullable=True)
    big_rocks_created = db.Column(db.Integer, nullable=False, default=0)
    tars_completed = db.Column(db.Integer, nullable=False, default=0)
    weekly_reviews = db.Column(db.Integer, nullable=False, default=0)
    daily_logs = db.Column(db.Integer, nullable=False, default=0)
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    user = db.relationship("User")
    medals = db.relationship(
        "Medal", back_populates="gamification", cascade="all, delete-orphan",
        order_by="Medal.earned_at",
    )

    def counters(self) -> dict:
        return {
            "longestStreak": self.longest_streak,
            "bigRocksCreated": self.big_rocks_created,
            "tarsCompleted": self.tars_completed,
            "weeklyReviews": self.weekly_reviews,
            "dailyLogs": self.daily_logs,
        }


class Medal(db.Model):
    __tablename__ = "medals"
    __table_args__ = (
        db.UniqueConstraint("gamification_id", "type", "level", name="uq_medal_type_level"),
    )

    id = db.Column(db.Integer, primary_key=True)
    gamification_id = db.Column(
        db.Integer, db.ForeignKey("gamification.id", ondelete="CASCADE"), nullable=False,
    )
    type = db.Column(db.String(20), nullable=False)
    level = db.Column(db.String(10), nullable=False)
    earned_at = db.Column(db.DateTime(timezone=True), default=utcnow)

    gamification = db.relationship("Gamification", back_populates="medals")

    def to_dict(self):
        return {
            "id": self.id,
            "type": self.type,
            "level": self.level,
            "earnedAt": iso(self.earned_at),
        }
