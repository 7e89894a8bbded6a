from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any

from sqlalchemy.exc import IntegrityError

from ..errors import ConflictError, NotFoundError, ValidationError
from ..extensions import db
from ..models import AppSetting, Category, User
from ..models.journal import TYPE_EXPENSE, VALID_TRANSACTION_TYPES
from ..time_utils import utcnow
from .permission_service import require_admin

KEY_DATABASE_CONFIG = "database_config"
KEY_DRIVE_CONFIG = "drive_config"
SETTING_KEYS = {KEY_DATABASE_CONFIG, KEY_DRIVE_CONFIG}

# Fields whose stored value is never echoed back by read APIs.
SENSITIVE_FIELDS = {"password", "client_secret", "api_key"}
MASK = "********"

DEFAULT_CATEGORIES = {
    "INCOME": ["Sales", "Services", "Other Income"],
    "EXPENSE": ["Operations", "Transport", "Consumption", "Office Supplies", "Other"],
}


@dataclass(frozen=True)
class AppSettings:
    """Immutable snapshot of process-wide settings as of load time."""
    categories: tuple[str, ...] = ()
    database_config: dict = field(default_factory=dict)
    drive_config: dict = field(default_factory=dict)
    versions: dict = field(default_factory=dict)

    def to_dict(self, *, masked: bool = True) -> dict:
        return {
            "categories": list(self.categories),
            KEY_DATABASE_CONFIG: mask_secrets(self.database_config) if masked else dict(self.database_config),
            KEY_DRIVE_CONFIG: mask_secrets(self.drive_config) if masked else dict(self.drive_config),
            "versions": dict(self.versions),
        }


def mask_secrets(value: dict) -> dict:
    return {k: (MASK if k in SENSITIVE_FIELDS and v else v) for k, v in (value or {}).items()}


def _decode(row: AppSetting | None) -> dict:
    if row is None or not row.value_json:
        return {}
    return json.loads(row.value_json)


def load_app_settings() -> AppSettings:
    rows = {row.key: row for row in db.session.query(AppSetting).all()}
    return AppSettings(
        categories=tuple(c.name for c in list_categories()),
        database_config=_decode(rows.get(KEY_DATABASE_CONFIG)),
        drive_config=_decode(rows.get(KEY_DRIVE_CONFIG)),
        versions={key: row.version for key, row in rows.items()},
    )


def get_setting(key: str) -> dict:
    if key not in SETTING_KEYS:
        raise NotFoundError(f"Unknown setting '{key}'")
    return _decode(db.session.query(AppSetting).filter_by(key=key).first())


def update_setting(actor: User, key: str, value: Any, expected_version: int | None = None) -> AppSetting:
    """
    Replace one setting's value.

    Last write wins unless expected_version is given, in which case a stale
    version raises ConflictError. Masked secrets sent back unchanged keep the
    stored secret.
    """
    require_admin(actor, "change settings")
    if key not in SETTING_KEYS:
        raise ValidationError(f"Unknown setting '{key}'. Must be one of: {', '.join(sorted(SETTING_KEYS))}")
    if not isinstance(value, dict):
        raise ValidationError(f"{key} must be an object")

    row = db.session.query(AppSetting).filter_by(key=key).first()
    current = _decode(row)
    if expected_version is not None:
        current_version = row.version if row else 0
        if int(expected_version) != current_version:
            raise ConflictError(
                f"Setting '{key}' is at version {current_version}, not {expected_version}; reload and retry"
            )

    merged = dict(value)
    for name in SENSITIVE_FIELDS:
        if merged.get(name) == MASK:
            merged[name] = current.get(name)

    if row is None:
        row = AppSetting(key=key, version=1)
        db.session.add(row)
    else:
        row.version = (row.version or 0) + 1
    row.value_json = json.dumps(merged)
    row.updated_by_user_id = actor.id
    row.updated_at = utcnow()
    db.session.commit()
    return row


# =============================================================================
# CATEGORIES
# =============================================================================

def _normalize_type(category_type: str | None) -> str:
    normalized = (category_type or TYPE_EXPENSE).strip().upper()
    if normalized not in VALID_TRANSACTION_TYPES:
        raise ValidationError(f"type must be one of: {', '.join(sorted(VALID_TRANSACTION_TYPES))}")
    return normalized


def list_categories(category_type: str | None = None) -> list[Category]:
    query = db.session.query(Category)
    if category_type:
        query = query.filter(Category.type == _normalize_type(category_type))
    return query.order_by(Category.id.asc()).all()


def add_category(actor: User, name: str, category_type: str | None = None) -> Category:
    require_admin(actor, "manage categories")
    name = (name or "").strip()
    if not name:
        raise ValidationError("name is required")
    category_type = _normalize_type(category_type)

    if db.session.query(Category).filter_by(name=name, type=category_type).first():
        raise ConflictError(f"Category '{name}' already exists for {category_type}")

    category = Category(name=name, type=category_type)
    db.session.add(category)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError(f"Category '{name}' already exists for {category_type}")
    return category


def delete_category(actor: User, name: str, category_type: str | None = None) -> int:
    """Delete by name; limited to one type when category_type is given."""
    require_admin(actor, "manage categories")
    query = db.session.query(Category).filter(Category.name == name)
    if category_type:
        query = query.filter(Category.type == _normalize_type(category_type))
    deleted = query.delete(synchronize_session=False)
    if not deleted:
        raise NotFoundError(f"Category '{name}' not found")
    db.session.commit()
    return deleted


def seed_default_categories() -> int:
    """Insert the default categories that are missing. Returns how many were added."""
    existing = {(c.name, c.type) for c in db.session.query(Category).all()}
    added = 0
    for category_type, names in DEFAULT_CATEGORIES.items():
        for name in names:
            if (name, category_type) not in existing:
                db.session.add(Category(name=name, type=category_type))
                added += 1
    db.session.commit()
    return added
