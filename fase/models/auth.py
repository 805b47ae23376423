"""
Auth Models — companies, users, company memberships.

A user belongs to one or more companies through ``UserCompany``; the
membership row also carries the supervisor edge for that company, so the
supervisor graph is per company.
"""

from fase.core.roles import Role
from fase.models import db, iso, utcnow

USER_STATUSES = ("INVITED", "ACTIVE", "DEACTIVATED")


# ═══════════════════════════════════════════════════════════════
# 1. COMPANIES
# ═══════════════════════════════════════════════════════════════
class Company(db.Model):
    __tablename__ = "companies"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False)
    slug = db.Column(db.String(100), unique=True, nullable=False)
    logo = db.Column(db.String(500))
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    memberships = db.relationship(
        "UserCompany", back_populates="company", lazy="dynamic",
        cascade="all, delete-orphan",
    )

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "slug": self.slug,
            "logo": self.logo,
            "createdAt": iso(self.created_at),
            "updatedAt": iso(self.updated_at),
            "userCount": self.memberships.count(),
        }

    def __repr__(self):
        return f"<Company {self.id}: {self.slug}>"


# ═══════════════════════════════════════════════════════════════
# 2. USERS
# ═══════════════════════════════════════════════════════════════
class User(db.Model):
    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(200), unique=True, nullable=False)
    name = db.Column(db.String(200))
    image = db.Column(db.String(500))
    role = db.Column(db.String(20), nullable=False, default=Role.USER.value)
    status = db.Column(db.String(20), nullable=False, default="ACTIVE")
    current_company_id = db.Column(
        db.Integer, db.ForeignKey("companies.id", ondelete="SET NULL"), nullable=True,
    )
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    memberships = db.relationship(
        "UserCompany", back_populates="user", lazy="dynamic",
        cascade="all, delete-orphan", foreign_keys="UserCompany.user_id",
    )
    current_company = db.relationship("Company", foreign_keys=[current_company_id])

    @property
    def role_enum(self) -> Role:
        return Role(self.role)

    def to_summary(self):
        return {"id": self.id, "name": self.name, "email": self.email}

    def to_dict(self):
        return {
            "id": self.id,
            "email": self.email,
            "name": self.name,
            "image": self.image,
            "role": self.role,
            "status": self.status,
            "currentCompanyId": self.current_company_id,
            "createdAt": iso(self.created_at),
        }

    def __repr__(self):
        return f"<User {self.id}: {self.email}>"


# ═══════════════════════════════════════════════════════════════
# 3. USER ↔ COMPANY MEMBERSHIP (+ supervisor edge)
# ═══════════════════════════════════════════════════════════════
class UserCompany(db.Model):
    __tablename__ = "user_companies"
    __table_args__ = (
        db.Index("ix_user_companies_supervisor", "company_id", "supervisor_id"),
        db.CheckConstraint(
            "supervisor_id IS NULL OR supervisor_id <> user_id",
            name="ck_user_companies_not_self_supervised",
        ),
    )

    user_id = db.Column(
        db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), primary_key=True,
    )
    company_id = db.Column(
        db.Integer, db.ForeignKey("companies.id", ondelete="CASCADE"), primary_key=True,
    )
    supervisor_id = db.Column(
        db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True,
    )
    ai_context_role = db.Column(db.String(200))
    ai_context_area = db.Column(db.String(200))
    ai_context_notes = db.Column(db.Text)
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow)

    user = db.relationship("User", back_populates="memberships", foreign_keys=[user_id])
    company = db.relationship("Company", back_populates="memberships")
    supervisor = db.relationship("User", foreign_keys=[supervisor_id])

    def to_dict(self):
        return {
            "userId": self.user_id,
            "companyId": self.company_id,
            "companyName": self.company.name if self.company else None,
            "supervisorId": self.supervisor_id,
            "aiContextRole": self.ai_context_role,
            "aiContextArea": self.ai_context_area,
            "aiContextNotes": self.ai_context_notes,
        }
