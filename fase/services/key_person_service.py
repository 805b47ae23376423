"""Key Person Service — the owner's stakeholder address book."""

import logging

from sqlalchemy import select

from fase.core.context import RequestContext
from fase.models import db
from fase.models.planning import KeyPerson
from fase.services import access, activity_log_service
from fase.utils.helpers import commit_or_raise

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = ("first_name", "last_name", "role", "contact")


def list_key_people(ctx: RequestContext, *, search: str | None = None) -> list[KeyPerson]:
    stmt = select(KeyPerson).where(KeyPerson.user_id == ctx.user_id)
    if ctx.company_id is not None:
        stmt = stmt.where(KeyPerson.company_id == ctx.company_id)
    if search:
        like = f"%{search}%"
        stmt = stmt.where(KeyPerson.first_name.ilike(like) | KeyPerson.last_name.ilike(like))
    stmt = stmt.order_by(KeyPerson.last_name, KeyPerson.first_name, KeyPerson.id)
    return list(db.session.execute(stmt).scalars().all())


def get_key_person(ctx: RequestContext, person_id: int) -> KeyPerson:
    return access.key_person_for(ctx, person_id)


def list_linked_tars(ctx: RequestContext, person_id: int) -> list[dict]:
    person = access.key_person_for(ctx, person_id)
    return [
        {**tar.to_dict(), "bigRockTitle": tar.big_rock.title, "month": tar.big_rock.month}
        for tar in person.tars
    ]


def create_key_person(ctx: RequestContext, data: dict) -> KeyPerson:
    person = KeyPerson(
        user_id=ctx.user_id,
        company_id=ctx.company_id,
        first_name=data["first_name"],
        last_name=data["last_name"],
        role=data.get("role"),
        contact=data.get("contact"),
    )
    db.session.add(person)
    db.session.flush()
    activity_log_service.log_key_person(ctx, "CREATE", person)
    commit_or_raise("KeyPerson")
    return person


def update_key_person(ctx: RequestContext, person_id: int, data: dict) -> KeyPerson:
    person = access.key_person_for(ctx, person_id)
    changes = {}
    for field in EDITABLE_FIELDS:
        if field in data and getattr(person, field) != data[field]:
            changes[field] = {"old": getattr(person, field), "new": data[field]}
            setattr(person, field, data[field])
    if changes:
        activity_log_service.log_key_person(ctx, "UPDATE", person, changes)
        commit_or_raise("KeyPerson")
    return person


def delete_key_person(ctx: RequestContext, person_id: int) -> None:
    person = access.key_person_for(ctx, person_id)
    activity_log_service.log_key_person(ctx, "DELETE", person)
    db.session.delete(person)
    commit_or_raise("KeyPerson")
    logger.info("KeyPerson %d deleted by user %d", person_id, ctx.user_id)
