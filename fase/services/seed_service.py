"""Demo data for local development (``flask seed-demo``).

Creates one company with a SUPERADMIN, an ADMIN, a SUPERVISOR and two
USERs reporting to the supervisor.  Running it twice is a no-op.
"""

import logging

from sqlalchemy import select

from fase.core.roles import Role
from fase.models import db
from fase.models.auth import Company, User, UserCompany
from fase.services import gamification_service

logger = logging.getLogger(__name__)

DEMO_SLUG = "demo"

DEMO_USERS = (
    ("superadmin@fase.local", "Super Admin", Role.SUPERADMIN, None),
    ("admin@fase.local", "Admin Demo", Role.ADMIN, None),
    ("supervisor@fase.local", "Supervisora Demo", Role.SUPERVISOR, None),
    ("ana@fase.local", "Ana Usuario", Role.USER, "supervisor@fase.local"),
    ("luis@fase.local", "Luis Usuario", Role.USER, "supervisor@fase.local"),
)


def seed_demo() -> int:
    """Insert the demo company and users.  Returns how many users were created."""
    company = db.session.execute(
        select(Company).where(Company.slug == DEMO_SLUG)
    ).scalar_one_or_none()
    if company is None:
        company = Company(name="Empresa Demo", slug=DEMO_SLUG)
        db.session.add(company)
        db.session.flush()

    by_email: dict[str, User] = {}
    created = 0
    for email, name, role, _ in DEMO_USERS:
        user = db.session.execute(select(User).where(User.email == email)).scalar_one_or_none()
        if user is None:
            user = User(
                email=email, name=name, role=role.value, status="ACTIVE",
                current_company_id=company.id,
            )
            db.session.add(user)
            db.session.flush()
            db.session.add(UserCompany(user_id=user.id, company_id=company.id))
            gamification_service.get_or_create(user.id)
            created += 1
        by_email[email] = user
    db.session.flush()

    for email, _, _, supervisor_email in DEMO_USERS:
        if supervisor_email is None:
            continue
        membership = db.session.get(UserCompany, (by_email[email].id, company.id))
        if membership is not None and membership.supervisor_id is None:
            membership.supervisor_id = by_email[supervisor_email].id

    db.session.commit()
    logger.info("Seeded demo company %s with %d new users", company.slug, created)
    return created
