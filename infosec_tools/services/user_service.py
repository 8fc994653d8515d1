"""
User Service — login, account CRUD, password and theme management.

All writes record an activity-log entry and commit; callers get the
refreshed model instance back.
"""

import logging
from datetime import datetime, timezone

from email_validator import EmailNotValidError, validate_email
from sqlalchemy import or_

from infosec_tools.core.exceptions import (
    AuthenticationError,
    ConflictError,
    ValidationError,
)
from infosec_tools.models import db
from infosec_tools.models.audit import write_activity
from infosec_tools.models.auth import ROLE_ADMIN, ROLE_READONLY, UI_THEMES, USER_ROLES, User
from infosec_tools.utils.crypto import hash_password, verify_password
from infosec_tools.utils.helpers import get_or_raise, is_blank, require_fields

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6

USER_SORT_FIELDS = ("id", "username", "first_name", "last_name", "role", "created_at", "updated_at")

# Accounts created by ``flask seed-users``: (username, password, role, first, last)
DEFAULT_USERS = (
    ("admin", "admin123", ROLE_ADMIN, "System", "Administrator"),
    ("user", "user123", ROLE_READONLY, "Read-only", "User"),
)


# ── Validation ───────────────────────────────────────────────────────────────

def _validate_password(password, field="password"):
    if is_blank(password) or len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters",
            details={field: "too short"},
        )


def _validate_role(role):
    if role not in USER_ROLES:
        raise ValidationError(
            f"role must be one of: {', '.join(USER_ROLES)}", details={"role": "invalid"},
        )


def _validate_theme(theme):
    if theme not in UI_THEMES:
        raise ValidationError(
            f"theme must be one of: {', '.join(UI_THEMES)}", details={"theme": "invalid"},
        )


def _normalize_email(email):
    if is_blank(email):
        return None
    try:
        return validate_email(email.strip(), check_deliverability=False).normalized
    except EmailNotValidError as e:
        raise ValidationError(f"Invalid email: {e}", details={"email": "invalid"})


def _ensure_unique_username(username, exclude_id=None):
    q = User.query.filter(User.username == username)
    if exclude_id is not None:
        q = q.filter(User.id != exclude_id)
    if q.first():
        raise ConflictError("User", "username", username)


# ═══════════════════════════════════════════════════════════════
# Authentication
# ═══════════════════════════════════════════════════════════════
def authenticate(username: str, password: str) -> User:
    """Check credentials, stamp ``last_login_at`` and log the login."""
    require_fields({"username": username, "password": password}, ("username", "password"))

    user = User.query.filter_by(username=username.strip()).first()
    if not user:
        logger.info("Login attempt for unknown user '%s'", username)
        raise AuthenticationError("Invalid username or password")
    if not verify_password(password, user.password_hash):
        logger.warning("Failed login for user '%s'", user.username)
        raise AuthenticationError("Invalid username or password")

    user.last_login_at = datetime.now(timezone.utc)
    write_activity("LOGIN", f"User {user.username} logged in", user_id=user.id)
    db.session.commit()
    return user


def change_password(user: User, old_password: str, new_password: str) -> None:
    if not verify_password(old_password or "", user.password_hash):
        raise AuthenticationError("Current password is incorrect")
    _validate_password(new_password, "new_password")
    user.password_hash = hash_password(new_password)
    write_activity("PASSWORD_CHANGE", f"User {user.username} changed their password", user_id=user.id)
    db.session.commit()


def update_theme(user: User, theme: str) -> User:
    _validate_theme(theme)
    user.ui_theme = theme
    db.session.commit()
    return user


# ═══════════════════════════════════════════════════════════════
# User CRUD
# ═══════════════════════════════════════════════════════════════
def create_user(
    username: str,
    password: str,
    role: str = ROLE_READONLY,
    first_name: str = None,
    last_name: str = None,
    email: str = None,
    ui_theme: str = "light",
    log_activity: bool = True,
) -> User:
    """Create a user account."""
    if is_blank(username):
        raise ValidationError("username is required", details={"username": "required"})
    username = username.strip()
    _validate_password(password)
    _validate_role(role)
    _validate_theme(ui_theme)
    email = _normalize_email(email)
    _ensure_unique_username(username)

    user = User(
        username=username,
        password_hash=hash_password(password),
        role=role,
        first_name=first_name,
        last_name=last_name,
        email=email,
        ui_theme=ui_theme,
    )
    db.session.add(user)
    db.session.flush()
    if log_activity:
        write_activity("CREATE", f"Created user {username} with role {role}")
    db.session.commit()
    logger.info("User created: id=%s username=%s role=%s", user.id, username, role)
    return user


def list_users_query(search: str = None, sort_by: str = "id", sort_order: str = "asc"):
    q = User.query
    if search:
        term = f"%{search.strip()}%"
        q = q.filter(or_(
            User.username.ilike(term),
            User.first_name.ilike(term),
            User.last_name.ilike(term),
            User.role.ilike(term),
        ))
    if sort_by not in USER_SORT_FIELDS:
        sort_by = "id"
    col = getattr(User, sort_by)
    q = q.order_by(col.desc() if str(sort_order).lower() == "desc" else col.asc(), User.id)
    return q


def update_user(user_id: int, data: dict) -> User:
    """Partial update; the activity entry lists the fields that changed."""
    user = get_or_raise(User, user_id, "User")
    changed = []

    if "username" in data and data["username"] != user.username:
        if is_blank(data["username"]):
            raise ValidationError("username cannot be blank", details={"username": "required"})
        username = data["username"].strip()
        _ensure_unique_username(username, exclude_id=user.id)
        user.username = username
        changed.append("username")

    if "role" in data and data["role"] != user.role:
        _validate_role(data["role"])
        user.role = data["role"]
        changed.append("role")

    if "ui_theme" in data and data["ui_theme"] != user.ui_theme:
        _validate_theme(data["ui_theme"])
        user.ui_theme = data["ui_theme"]
        changed.append("ui_theme")

    if "email" in data:
        email = _normalize_email(data["email"])
        if email != user.email:
            user.email = email
            changed.append("email")

    for field in ("first_name", "last_name"):
        if field in data and data[field] != getattr(user, field):
            setattr(user, field, data[field])
            changed.append(field)

    if not is_blank(data.get("password")):
        _validate_password(data["password"])
        user.password_hash = hash_password(data["password"])
        changed.append("password")

    if changed:
        write_activity("UPDATE", f"Updated user {user.username}: {', '.join(changed)}")
    db.session.commit()
    return user


def delete_user(user_id: int, acting_user_id: int | None) -> None:
    user = get_or_raise(User, user_id, "User")
    if acting_user_id is not None and user.id == acting_user_id:
        raise ValidationError("You cannot delete your own account")
    username = user.username
    db.session.delete(user)
    write_activity("DELETE", f"Deleted user {username}")
    db.session.commit()
    logger.info("User deleted: id=%s username=%s", user_id, username)


def reset_password(user_id: int, new_password: str) -> User:
    user = get_or_raise(User, user_id, "User")
    _validate_password(new_password, "new_password")
    user.password_hash = hash_password(new_password)
    write_activity("RESET_PASSWORD", f"Reset password for user {user.username}")
    db.session.commit()
    return user


def seed_default_users() -> int:
    """Create the default admin / read-only accounts when missing."""
    created = 0
    for username, password, role, first_name, last_name in DEFAULT_USERS:
        if User.query.filter_by(username=username).first():
            continue
        create_user(
            username, password, role=role,
            first_name=first_name, last_name=last_name, log_activity=False,
        )
        created += 1
    return created
