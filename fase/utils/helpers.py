"""Shared utility functions for services and blueprints.

get_or_raise:     fetch by PK or raise NotFoundError
parse_date:       ISO / DD.MM.YYYY → date, None on bad input
parse_datetime:   ISO → naive datetime, None on bad input
commit_or_raise:  commit, mapping IntegrityError to ConflictError
FieldErrors:      accumulate field-level validation errors in blueprints
"""
import logging
from datetime import date, datetime

from sqlalchemy.exc import IntegrityError

from fase.core.exceptions import ConflictError, NotFoundError, ValidationError
from fase.models import db

logger = logging.getLogger(__name__)


def get_or_raise(model, pk, label=None):
    """Fetch a model instance by primary key or raise NotFoundError."""
    obj = db.session.get(model, pk)
    if obj is None:
        raise NotFoundError(resource=label or model.__name__, resource_id=pk)
    return obj


def parse_date(value):
    """Parse a date string (ISO or DD.MM.YYYY) to a date object.

    Returns None for empty/invalid input. Supports:
    - YYYY-MM-DD (ISO format)
    - YYYY-MM-DDTHH:MM:SS (datetime ISO → .date())
    - DD.MM.YYYY
    """
    if not value:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value))
    except (ValueError, TypeError):
        pass
    try:
        return datetime.fromisoformat(str(value).replace("Z", "+00:00")).date()
    except (ValueError, TypeError):
        pass
    try:
        return datetime.strptime(str(value), "%d.%m.%Y").date()
    except (ValueError, TypeError):
        return None


def parse_datetime(value):
    """Parse an ISO datetime (or bare date) to a naive datetime, None on bad input."""
    if not value:
        return None
    if isinstance(value, datetime):
        return value.replace(tzinfo=None)
    try:
        return datetime.fromisoformat(str(value).replace("Z", "+00:00")).replace(tzinfo=None)
    except (ValueError, TypeError):
        return None


# ── Database commit helper ───────────────────────────────────────────────────

def commit_or_raise(resource: str = "Record", field: str = "id"):
    """Commit the current session.

    IntegrityError → rollback + ConflictError (409).
    Anything else  → rollback and re-raise.
    """
    try:
        db.session.commit()
    except IntegrityError as exc:
        db.session.rollback()
        logger.warning("Integrity error on commit (%s): %s", resource, exc.orig)
        raise ConflictError(resource, field) from exc
    except Exception:
        db.session.rollback()
        logger.exception("Unexpected database error on commit (%s)", resource)
        raise


# ── Payload validation ───────────────────────────────────────────────────────

class FieldErrors:
    """Collects ``{field: message}`` pairs while validating a JSON body.

    Usage::

        errs = FieldErrors(data)
        title = errs.string("title", 3, 100)
        num = errs.integer("numTars", 1, 20)
        errs.raise_if_any()
    """

    def __init__(self, data: dict, *, partial: bool = False):
        self.data = data or {}
        self.partial = partial
        self.errors: dict[str, str] = {}

    def _missing(self, field: str, required: bool) -> bool:
        if field not in self.data:
            if required and not self.partial:
                self.errors[field] = f"{field} es requerido"
            return True
        if self.data[field] in (None, ""):
            if required:
                self.errors[field] = f"{field} es requerido"
            return True
        return False

    def string(self, field, min_len=0, max_len=None, *, required=True):
        if self._missing(field, required):
            return None
        value = self.data[field]
        if not isinstance(value, str):
            self.errors[field] = f"{field} debe ser texto"
            return None
        value = value.strip()
        if len(value) < min_len:
            self.errors[field] = f"{field} debe tener al menos {min_len} caracteres"
        elif max_len is not None and len(value) > max_len:
            self.errors[field] = f"{field} no puede exceder {max_len} caracteres"
        return value

    def integer(self, field, min_value=None, max_value=None, *, required=True):
        if self._missing(field, required):
            return None
        value = self.data[field]
        if isinstance(value, bool) or not isinstance(value, (int, str)):
            self.errors[field] = f"{field} debe ser un número entero"
            return None
        try:
            value = int(value)
        except ValueError:
            self.errors[field] = f"{field} debe ser un número entero"
            return None
        if min_value is not None and value < min_value:
            self.errors[field] = f"{field} debe ser al menos {min_value}"
        elif max_value is not None and value > max_value:
            self.errors[field] = f"{field} no puede exceder {max_value}"
        return value

    def choice(self, field, choices, *, required=True):
        if self._missing(field, required):
            return None
        value = self.data[field]
        if value not in choices:
            self.errors[field] = f"{field} debe ser uno de: {', '.join(choices)}"
            return None
        return value

    def boolean(self, field, *, required=False):
        if self._missing(field, required):
            return None
        value = self.data[field]
        if not isinstance(value, bool):
            self.errors[field] = f"{field} debe ser booleano"
            return None
        return value

    def matches(self, field, check, message, *, required=True):
        """Validate with a predicate (e.g. ``is_valid_month``)."""
        if self._missing(field, required):
            return None
        value = self.data[field]
        if not check(value):
            self.errors[field] = message
            return None
        return value

    def date(self, field, *, required=True):
        if self._missing(field, required):
            return None
        value = parse_date(self.data[field])
        if value is None:
            self.errors[field] = f"{field} debe ser una fecha válida (YYYY-MM-DD)"
        return value

    def datetime(self, field, *, required=True):
        if self._missing(field, required):
            return None
        value = parse_datetime(self.data[field])
        if value is None:
            self.errors[field] = f"{field} debe ser una fecha válida"
        return value

    def present(self, field) -> bool:
        return field in self.data

    def raise_if_any(self, message="Datos inválidos"):
        if self.errors:
            raise ValidationError(message, details=self.errors)
