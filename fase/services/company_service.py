"""Company Service — tenant administration (SUPERADMIN only)."""

import logging
import re
import unicodedata

from sqlalchemy import select

from fase.core.context import RequestContext
from fase.models import db
from fase.models.auth import Company, UserCompany
from fase.utils.helpers import commit_or_raise, get_or_raise

logger = logging.getLogger(__name__)

_SLUG_STRIP = re.compile(r"[^a-z0-9]+")


def generate_slug(name: str) -> str:
    """``"Compañía Ñandú"`` → ``"compania-nandu"``."""
    ascii_name = unicodedata.normalize("NFKD", name).encode("ascii", "ignore").decode("ascii")
    return _SLUG_STRIP.sub("-", ascii_name.lower()).strip("-") or "empresa"


def _unique_slug(name: str, *, exclude_id: int | None = None) -> str:
    base = generate_slug(name)
    slug, n = base, 1
    while True:
        stmt = select(Company.id).where(Company.slug == slug)
        if exclude_id is not None:
            stmt = stmt.where(Company.id != exclude_id)
        if db.session.execute(stmt).first() is None:
            return slug
        n += 1
        slug = f"{base}-{n}"


def list_companies(ctx: RequestContext) -> list[Company]:
    stmt = select(Company).order_by(Company.name, Company.id)
    if not ctx.policy.can_manage_companies:
        stmt = stmt.join(UserCompany, UserCompany.company_id == Company.id).where(
            UserCompany.user_id == ctx.user_id,
        )
    return list(db.session.execute(stmt).scalars().all())


def create_company(ctx: RequestContext, data: dict) -> Company:
    company = Company(
        name=data["name"],
        slug=data.get("slug") or _unique_slug(data["name"]),
        logo=data.get("logo"),
    )
    db.session.add(company)
    commit_or_raise("Company", "slug")
    logger.info("User %d created company %d (%s)", ctx.user_id, company.id, company.slug)
    return company


def update_company(ctx: RequestContext, company_id: int, data: dict) -> Company:
    company = get_or_raise(Company, company_id, "Empresa")
    if "name" in data and data["name"] != company.name:
        company.name = data["name"]
        company.slug = _unique_slug(data["name"], exclude_id=company.id)
    if data.get("slug"):
        company.slug = data["slug"]
    if "logo" in data:
        company.logo = data["logo"]
    commit_or_raise("Company", "slug")
    return company
