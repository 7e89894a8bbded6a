# Overview: Service-layer operations for reimbursements; the approval state machine.

"""
Reimbursement Workflow Service

LIFECYCLE:
1. Submit (PENDING) - employee (or an admin on their behalf) files a claim
2. Process (PENDING -> PROCESSING) - admin signals the claim is under review
3. Approve (-> APPROVED) - admin pays out; transfer proof required
   Reject  (-> REJECTED) - admin declines; reason required

APPROVED and REJECTED are terminal. Only APPROVED claims reach the reports.

RULES:
- Only admins transition or delete. The role check runs before any state
  check, so an employee gets the same AuthorizationError for every status.
- Details may be edited only while PENDING, by the requestor or an admin.
- grand_total is recomputed from the items on every write.
- Transitions are compare-and-set on the stored status: if another admin
  moved the claim first, the second call fails with ConflictError.
- Each transition notifies the requestor (best-effort).
"""

from __future__ import annotations

from flask import current_app

from ..errors import AuthorizationError, ConflictError, NotFoundError, ValidationError
from ..extensions import db
from ..formatting import format_currency
from ..models import Employee, Reimbursement, ReimbursementItem, User
from ..models.communications import TYPE_ERROR, TYPE_INFO, TYPE_SUCCESS
from ..models.reimbursements import (
    STATUS_APPROVED,
    STATUS_PENDING,
    STATUS_PROCESSING,
    STATUS_REJECTED,
    STATUS_SYNONYMS,
    TERMINAL_STATUSES,
    VALID_STATUSES,
)
from ..time_utils import parse_iso_date, utcnow
from . import line_items, notification_service
from .concurrency import atomic, compare_and_set
from .permission_service import is_admin, require_admin

VALID_TRANSITIONS = {
    (STATUS_PENDING, STATUS_PROCESSING),
    (STATUS_PENDING, STATUS_APPROVED),
    (STATUS_PENDING, STATUS_REJECTED),
    (STATUS_PROCESSING, STATUS_APPROVED),
    (STATUS_PROCESSING, STATUS_REJECTED),
}


def normalize_status(value: str | None) -> str:
    """Map a status or one of its display synonyms (PROSES, BERHASIL, DITOLAK) to the stored value."""
    status = (value or "").strip().upper()
    status = STATUS_SYNONYMS.get(status, status)
    if status not in VALID_STATUSES:
        raise ValidationError(
            f"Invalid status '{value}'. Must be one of: {', '.join(sorted(VALID_STATUSES))}"
        )
    return status


def can_transition(from_status: str, to_status: str) -> bool:
    return (from_status, to_status) in VALID_TRANSITIONS


# =============================================================================
# SUBMISSION AND DETAILS
# =============================================================================

def _entry_fields(payload: dict) -> dict:
    try:
        entry_date = parse_iso_date(payload.get("date"))
    except ValueError:
        raise ValidationError("date must be YYYY-MM-DD")
    if not entry_date:
        raise ValidationError("date is required")

    fields = {"date": entry_date}
    for key in ("category", "activity_name"):
        value = str(payload.get(key) or "").strip()
        if not value:
            raise ValidationError(f"{key} is required")
        fields[key] = value
    fields["description"] = (payload.get("description") or "").strip() or None
    return fields


def _resolve_requestor(actor: User, payload: dict) -> tuple[str, int | None]:
    """Employees always file for themselves; admins may name any employee."""
    if not is_admin(actor):
        if actor.employee is None:
            raise ValidationError("Account has no employee profile")
        return actor.employee.name, actor.employee.id

    employee_id = payload.get("employee_id")
    if employee_id is not None:
        try:
            employee_id = int(employee_id)
        except (TypeError, ValueError):
            raise ValidationError("employee_id must be an integer")
        employee = db.session.get(Employee, employee_id)
        if not employee:
            raise NotFoundError(f"Employee {employee_id} not found")
        return employee.name, employee.id

    requestor_name = str(payload.get("requestor_name") or "").strip()
    if not requestor_name:
        raise ValidationError("requestor_name or employee_id is required")
    employee = db.session.query(Employee).filter_by(name=requestor_name).first()
    return requestor_name, employee.id if employee else None


def submit_reimbursement(actor: User, payload: dict) -> Reimbursement:
    """
    File a new claim in PENDING.

    Any grand_total or item total in the payload is ignored and recomputed.
    """
    fields = _entry_fields(payload)
    items = line_items.parse_items(payload.get("items"))
    requestor_name, employee_id = _resolve_requestor(actor, payload)

    claimed_total = payload.get("grand_total")
    computed_total = line_items.grand_total(items)
    if claimed_total is not None and claimed_total != computed_total:
        current_app.logger.warning(
            "Client grand_total %s replaced by computed %s for %s", claimed_total, computed_total, requestor_name
        )

    reimbursement = Reimbursement(
        requestor_name=requestor_name,
        employee_id=employee_id,
        grand_total=computed_total,
        status=STATUS_PENDING,
        created_by_user_id=actor.id,
        items=line_items.build_rows(ReimbursementItem, items),
        **fields,
    )

    with atomic() as session:
        session.add(reimbursement)

    notification_service.notify_admins(
        f"New reimbursement request: {requestor_name} - {reimbursement.activity_name} "
        f"({format_currency(reimbursement.grand_total)})",
        TYPE_INFO,
        created_by_user_id=actor.id,
    )
    return reimbursement


def _can_view(actor: User, reimbursement: Reimbursement) -> bool:
    if is_admin(actor):
        return True
    return actor.employee is not None and reimbursement.employee_id == actor.employee.id


def get_reimbursement(actor: User, reimbursement_id: int) -> Reimbursement:
    reimbursement = db.session.get(Reimbursement, reimbursement_id)
    if not reimbursement:
        raise NotFoundError(f"Reimbursement {reimbursement_id} not found")
    if not _can_view(actor, reimbursement):
        raise AuthorizationError("You can only view your own reimbursements")
    return reimbursement


def list_reimbursements(actor: User, status: str | None = None) -> list[Reimbursement]:
    """Admins see every claim; employees only their own. Newest first."""
    query = db.session.query(Reimbursement)
    if not is_admin(actor):
        if actor.employee is None:
            return []
        query = query.filter(Reimbursement.employee_id == actor.employee.id)
    if status:
        query = query.filter(Reimbursement.status == normalize_status(status))
    return query.order_by(Reimbursement.created_at.desc(), Reimbursement.id.desc()).all()


def update_details(actor: User, reimbursement_id: int, payload: dict) -> Reimbursement:
    """
    Edit a PENDING claim's fields and items.

    Raises:
        AuthorizationError: actor is neither the requestor nor an admin
        ConflictError: claim is no longer PENDING, or changed concurrently
    """
    reimbursement = db.session.get(Reimbursement, reimbursement_id)
    if not reimbursement:
        raise NotFoundError(f"Reimbursement {reimbursement_id} not found")
    if not _can_view(actor, reimbursement):
        raise AuthorizationError("Only the requestor or an admin may edit this reimbursement")
    if reimbursement.status != STATUS_PENDING:
        raise ConflictError(
            f"Only PENDING reimbursements can be edited. Reimbursement {reimbursement_id} is {reimbursement.status}"
        )

    expected_version = payload.get("version_id")
    if expected_version is not None:
        try:
            expected_version = int(expected_version)
        except (TypeError, ValueError):
            raise ValidationError("version_id must be an integer")
    if expected_version is not None and expected_version != reimbursement.version_id:
        raise ConflictError("Reimbursement was modified by another request; reload and retry")

    fields = _entry_fields(payload)
    items = line_items.parse_items(payload.get("items"))

    with atomic():
        for key, value in fields.items():
            setattr(reimbursement, key, value)
        if is_admin(actor) and (payload.get("employee_id") is not None or payload.get("requestor_name")):
            reimbursement.requestor_name, reimbursement.employee_id = _resolve_requestor(actor, payload)
        reimbursement.items = line_items.build_rows(ReimbursementItem, items)
        reimbursement.grand_total = line_items.grand_total(items)

    return reimbursement


def delete_reimbursement(actor: User, reimbursement_id: int) -> None:
    require_admin(actor, "delete reimbursements")
    reimbursement = db.session.get(Reimbursement, reimbursement_id)
    if not reimbursement:
        raise NotFoundError(f"Reimbursement {reimbursement_id} not found")
    with atomic() as session:
        session.delete(reimbursement)


# =============================================================================
# STATUS TRANSITIONS
# =============================================================================

def _transition(
    actor: User,
    reimbursement_id: int,
    to_status: str,
    *,
    expected_status: str | None,
    values: dict,
) -> Reimbursement:
    require_admin(actor, "change reimbursement status")

    reimbursement = db.session.get(Reimbursement, reimbursement_id)
    if not reimbursement:
        raise NotFoundError(f"Reimbursement {reimbursement_id} not found")

    current = reimbursement.status
    if expected_status is not None and normalize_status(expected_status) != current:
        raise ConflictError(
            f"Reimbursement {reimbursement_id} is {current}, not {normalize_status(expected_status)}; reload and retry"
        )
    if current in TERMINAL_STATUSES:
        raise ConflictError(f"Reimbursement {reimbursement_id} is already {current}")
    if not can_transition(current, to_status):
        raise ConflictError(f"Cannot move reimbursement {reimbursement_id} from {current} to {to_status}")

    with atomic():
        compare_and_set(
            Reimbursement,
            reimbursement_id,
            column="status",
            expected=current,
            values={
                "status": to_status,
                "reviewed_by_user_id": actor.id,
                "updated_at": utcnow(),
                **values,
            },
        )

    db.session.refresh(reimbursement)
    current_app.logger.info(
        "Reimbursement %s: %s -> %s by %s", reimbursement_id, current, to_status, actor.username
    )
    return reimbursement


def mark_processing(actor: User, reimbursement_id: int, expected_status: str | None = None) -> Reimbursement:
    reimbursement = _transition(
        actor,
        reimbursement_id,
        STATUS_PROCESSING,
        expected_status=expected_status,
        values={"rejection_reason": None},
    )
    notification_service.notify_employee(
        reimbursement.employee_id,
        f"Your request {reimbursement.activity_name} is now being processed.",
        TYPE_INFO,
        created_by_user_id=actor.id,
    )
    return reimbursement


def approve(
    actor: User,
    reimbursement_id: int,
    transfer_proof_url: str | None,
    expected_status: str | None = None,
) -> Reimbursement:
    """Approve and record payout. The transfer proof reference is mandatory."""
    require_admin(actor, "approve reimbursements")
    transfer_proof_url = (transfer_proof_url or "").strip()
    if not transfer_proof_url:
        raise ValidationError("transfer_proof_url is required to approve a reimbursement")

    reimbursement = _transition(
        actor,
        reimbursement_id,
        STATUS_APPROVED,
        expected_status=expected_status,
        values={"transfer_proof_url": transfer_proof_url, "rejection_reason": None},
    )
    notification_service.notify_employee(
        reimbursement.employee_id,
        f"Your request {reimbursement.activity_name} has been APPROVED and paid "
        f"({format_currency(reimbursement.grand_total)}).",
        TYPE_SUCCESS,
        created_by_user_id=actor.id,
    )
    return reimbursement


def reject(
    actor: User,
    reimbursement_id: int,
    rejection_reason: str | None,
    expected_status: str | None = None,
) -> Reimbursement:
    """Reject with a reason; the reason is repeated in the employee's notification."""
    require_admin(actor, "reject reimbursements")
    rejection_reason = (rejection_reason or "").strip()
    if not rejection_reason:
        raise ValidationError("rejection_reason is required to reject a reimbursement")

    reimbursement = _transition(
        actor,
        reimbursement_id,
        STATUS_REJECTED,
        expected_status=expected_status,
        values={"rejection_reason": rejection_reason},
    )
    notification_service.notify_employee(
        reimbursement.employee_id,
        f"Your request {reimbursement.activity_name} was REJECTED. Reason: {rejection_reason}",
        TYPE_ERROR,
        created_by_user_id=actor.id,
    )
    return reimbursement


def transition_to(actor: User, reimbursement_id: int, payload: dict) -> Reimbursement:
    """
    Generic status endpoint: ``{"status": ..., "transfer_proof_url"?, "rejection_reason"?,
    "expected_status"?}``. Dispatches to the specific transition.
    """
    require_admin(actor, "change reimbursement status")
    target = normalize_status(payload.get("status"))
    expected = payload.get("expected_status")
    if target == STATUS_PROCESSING:
        return mark_processing(actor, reimbursement_id, expected_status=expected)
    if target == STATUS_APPROVED:
        return approve(actor, reimbursement_id, payload.get("transfer_proof_url"), expected_status=expected)
    if target == STATUS_REJECTED:
        return reject(actor, reimbursement_id, payload.get("rejection_reason"), expected_status=expected)
    raise ConflictError("Reimbursements cannot be moved back to PENDING")
