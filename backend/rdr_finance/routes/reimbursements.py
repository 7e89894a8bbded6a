# Overview: Flask API routes for reimbursements; parses input and returns JSON responses.

"""
Reimbursement API Routes

DESIGN:
- Employees submit and list their own claims
- Admins list everything and move claims through
  PENDING -> PROCESSING -> APPROVED | REJECTED
- Every transition accepts an optional "expected_status"; if the claim is no
  longer in that state the call fails with 409 instead of overwriting

SECURITY:
- Role checks happen in reimbursement_service so the same rules hold for
  every caller; these routes only authenticate
"""

from flask import Blueprint, request, jsonify, g

from ..services import activity_service, reimbursement_service
from ..decorators import require_auth


reimbursements_bp = Blueprint("reimbursements", __name__, url_prefix="/api/reimbursements")


def _body() -> dict:
    return request.get_json(silent=True) or {}


@reimbursements_bp.get("")
@require_auth
def list_reimbursements_route():
    """Query params: status (PENDING|PROCESSING|APPROVED|REJECTED or PROSES|BERHASIL|DITOLAK)."""
    reimbursements = reimbursement_service.list_reimbursements(
        g.current_user,
        status=request.args.get("status"),
    )
    return jsonify({"reimbursements": [r.to_dict() for r in reimbursements]})


@reimbursements_bp.post("")
@require_auth
def submit_reimbursement_route():
    """
    Submit a claim (status: PENDING).

    Request body:
    {
        "date": "2025-01-05",
        "category": "Transport",
        "activity_name": "Client visit",
        "description": "Taxi",
        "items": [{"name": "Taxi", "qty": 1, "price": 75000, "file_url": "/uploads/r.png"}],
        "requestor_name": "Budi",  (admin only)
        "employee_id": 3  (admin only)
    }

    Returns:
        201: Reimbursement created
        400: Invalid input
    """
    reimbursement = reimbursement_service.submit_reimbursement(g.current_user, _body())
    activity_service.record(g.current_user, f"Submitted reimbursement {reimbursement.activity_name}")
    return jsonify({"reimbursement": reimbursement.to_dict()}), 201


@reimbursements_bp.get("/<int:reimbursement_id>")
@require_auth
def get_reimbursement_route(reimbursement_id: int):
    reimbursement = reimbursement_service.get_reimbursement(g.current_user, reimbursement_id)
    return jsonify({"reimbursement": reimbursement.to_dict()})


@reimbursements_bp.put("/<int:reimbursement_id>/details")
@require_auth
def update_details_route(reimbursement_id: int):
    """
    Edit a PENDING claim. Same body as submit, plus optional "version_id".

    Returns:
        200: Updated
        403: Not the requestor or an admin
        409: No longer PENDING, or modified concurrently
    """
    reimbursement = reimbursement_service.update_details(g.current_user, reimbursement_id, _body())
    activity_service.record(g.current_user, f"Edited reimbursement {reimbursement_id}")
    return jsonify({"reimbursement": reimbursement.to_dict()})


@reimbursements_bp.post("/<int:reimbursement_id>/process")
@require_auth
def process_reimbursement_route(reimbursement_id: int):
    """Request body (optional): {"expected_status": "PENDING"}"""
    reimbursement = reimbursement_service.mark_processing(
        g.current_user,
        reimbursement_id,
        expected_status=_body().get("expected_status"),
    )
    activity_service.record(g.current_user, f"Processing reimbursement {reimbursement_id}")
    return jsonify({"reimbursement": reimbursement.to_dict()})


@reimbursements_bp.post("/<int:reimbursement_id>/approve")
@require_auth
def approve_reimbursement_route(reimbursement_id: int):
    """
    Request body:
    {
        "transfer_proof_url": "/uploads/proof.png",
        "expected_status": "PROCESSING"  (optional)
    }
    """
    data = _body()
    reimbursement = reimbursement_service.approve(
        g.current_user,
        reimbursement_id,
        data.get("transfer_proof_url"),
        expected_status=data.get("expected_status"),
    )
    activity_service.record(g.current_user, f"Approved reimbursement {reimbursement_id}")
    return jsonify({"reimbursement": reimbursement.to_dict()})


@reimbursements_bp.post("/<int:reimbursement_id>/reject")
@require_auth
def reject_reimbursement_route(reimbursement_id: int):
    """
    Request body:
    {
        "rejection_reason": "Receipt unreadable",
        "expected_status": "PENDING"  (optional)
    }
    """
    data = _body()
    reimbursement = reimbursement_service.reject(
        g.current_user,
        reimbursement_id,
        data.get("rejection_reason"),
        expected_status=data.get("expected_status"),
    )
    activity_service.record(g.current_user, f"Rejected reimbursement {reimbursement_id}")
    return jsonify({"reimbursement": reimbursement.to_dict()})


@reimbursements_bp.put("/<int:reimbursement_id>/status")
@require_auth
def update_status_route(reimbursement_id: int):
    """Generic transition: {"status": "BERHASIL", "transfer_proof_url": ..., "rejection_reason": ...}"""
    reimbursement = reimbursement_service.transition_to(g.current_user, reimbursement_id, _body())
    activity_service.record(g.current_user, f"Set reimbursement {reimbursement_id} to {reimbursement.status}")
    return jsonify({"reimbursement": reimbursement.to_dict()})


@reimbursements_bp.delete("/<int:reimbursement_id>")
@require_auth
def delete_reimbursement_route(reimbursement_id: int):
    reimbursement_service.delete_reimbursement(g.current_user, reimbursement_id)
    activity_service.record(g.current_user, f"Deleted reimbursement {reimbursement_id}")
    return jsonify({"status": "deleted"})
