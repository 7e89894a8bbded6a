from flask import Blueprint, Response, jsonify, request

from ..decorators import require_auth, require_role
from ..services import reporting_service
from ..time_utils import utcnow


reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports")


@reports_bp.get("/ledger")
@require_auth
@require_role("admin")
def ledger_report():
    """Query params: start_date, end_date, type (ALL|INCOME|EXPENSE|REIMBURSE), category."""
    try:
        filters = reporting_service.ReportFilters.from_args(request.args)
        report = reporting_service.ledger_report(filters)
        return jsonify(report), 200
    except reporting_service.ReportError as exc:
        return jsonify({"error": exc.kind, "message": str(exc)}), 400


@reports_bp.get("/ledger.csv")
@require_auth
@require_role("admin")
def ledger_csv():
    try:
        filters = reporting_service.ReportFilters.from_args(request.args)
    except reporting_service.ReportError as exc:
        return jsonify({"error": exc.kind, "message": str(exc)}), 400

    rows, _summary = reporting_service.ledger_rows(filters)
    filename = f"financial_report_{utcnow().strftime('%Y%m%d')}.csv"
    return Response(
        reporting_service.to_csv(rows),
        mimetype="text/csv",
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )


@reports_bp.get("/ledger/print")
@require_auth
@require_role("admin")
def ledger_print():
    try:
        filters = reporting_service.ReportFilters.from_args(request.args)
    except reporting_service.ReportError as exc:
        return jsonify({"error": exc.kind, "message": str(exc)}), 400

    rows, summary = reporting_service.ledger_rows(filters)
    html = reporting_service.render_print_html(rows, summary, filters)
    return Response(html, mimetype="text/html")
