# Overview: Flask API routes for the upload store.

from flask import Blueprint, current_app, request, jsonify, g, send_from_directory

from ..services import upload_service
from ..decorators import require_auth


uploads_bp = Blueprint("uploads", __name__)


@uploads_bp.post("/api/uploads")
@require_auth
def upload_route():
    """
    Store one file (multipart field "file") and return its reference.

    Returns:
        201: {"url": "/uploads/<name>"}
        400: No file or disallowed type
        503: File store unavailable
    """
    url = upload_service.save_upload(request.files.get("file"))
    current_app.logger.info("User %s uploaded %s", g.current_user.username, url)
    return jsonify({"url": url}), 201


@uploads_bp.get("/uploads/<path:name>")
def serve_upload_route(name: str):
    return send_from_directory(upload_service.upload_folder(), name)
