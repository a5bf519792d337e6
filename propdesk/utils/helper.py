import uuid
from contextlib import contextmanager
from datetime import date, datetime, timezone
from functools import wraps

from flask import current_app
from flask_jwt_extended import get_jwt, get_jwt_identity

from propdesk import db
from propdesk.errors import AuthorizationError, ValidationError
from propdesk.models import MANAGER_ROLES, UserRole


@contextmanager
def unit_of_work():
    """
    Run a multi-step workflow as one transaction.
    Commits when the block finishes, rolls back on any exception and re-raises it.
    """
    try:
        yield db.session
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise


# ---------------------
# Access control
# ---------------------

def role_required(*roles):
    """Reject the request with 403 unless the JWT `role` claim is one of `roles`."""
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            role = get_jwt().get("role")
            if role not in roles:
                current_app.logger.warning(
                    f"Access denied for user {get_jwt_identity()} with role {role} (requires {', '.join(roles)})"
                )
                raise AuthorizationError("Access denied")
            return fn(*args, **kwargs)
        return wrapper
    return decorator


manager_required = role_required(*MANAGER_ROLES)
admin_required = role_required(UserRole.admin.value)


class AccessHelper:
    """Identity of the caller, taken from the verified JWT."""

    def __init__(self):
        self.user_id = get_jwt_identity()
        self.role = get_jwt().get("role")

    @property
    def is_manager(self):
        return self.role in MANAGER_ROLES

    def ensure_self_or_manager(self, tenant_id):
        if self.is_manager:
            return
        if self.role != UserRole.tenant.value or str(tenant_id) != str(self.user_id):
            raise AuthorizationError("Access denied")


# ---------------------
# Input parsing
# ---------------------

def parse_uuid(value, field, required=True):
    if value in (None, ""):
        if required:
            raise ValidationError(f"{field} is required")
        return None
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except ValueError:
        raise ValidationError(f"Invalid {field}")


def parse_date(value, field, required=True):
    if value in (None, ""):
        if required:
            raise ValidationError(f"{field} is required")
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        # Accept full ISO timestamps as well as plain dates
        return datetime.fromisoformat(str(value).replace("Z", "+00:00")).date()
    except ValueError:
        raise ValidationError(f"Invalid {field} format. Use YYYY-MM-DD")


def parse_amount(value, field, required=False):
    if value in (None, ""):
        if required:
            raise ValidationError(f"{field} is required")
        return None
    try:
        amount = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be a number")
    if amount < 0:
        raise ValidationError(f"{field} cannot be negative")
    return amount


def parse_int(value, field, required=False):
    if value in (None, ""):
        if required:
            raise ValidationError(f"{field} is required")
        return None
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be an integer")
    if isinstance(value, float):
        if not value.is_integer():
            raise ValidationError(f"{field} must be an integer")
        return int(value)
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be an integer")


def parse_choice(value, field, choices, required=False):
    if value in (None, ""):
        if required:
            raise ValidationError(f"{field} is required")
        return None
    allowed = [c.value for c in choices]
    if value not in allowed:
        raise ValidationError(f"Invalid {field}. Allowed: {', '.join(allowed)}")
    return value


def parse_text(value, field, required=False):
    if value is None or (isinstance(value, str) and not value.strip()):
        if required:
            raise ValidationError(f"{field} is required")
        return None
    if not isinstance(value, str):
        raise ValidationError(f"{field} must be a string")
    return value.strip()


def parse_object(value, field):
    if value is None:
        return None
    if not isinstance(value, dict):
        raise ValidationError(f"{field} must be an object")
    return value


def parse_list(value, field):
    if value is None:
        return None
    if not isinstance(value, list):
        raise ValidationError(f"{field} must be a list")
    return value


def parse_bool(value, field):
    if value is None:
        return None
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.lower() in ("true", "false"):
        return value.lower() == "true"
    raise ValidationError(f"{field} must be true or false")


def parse_datetime(value, field, required=False):
    """ISO date or timestamp as a naive datetime; offsets are converted to UTC."""
    if value in (None, ""):
        if required:
            raise ValidationError(f"{field} is required")
        return None
    try:
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        raise ValidationError(f"Invalid {field} format. Use ISO 8601")
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed
