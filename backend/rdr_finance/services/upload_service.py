# Overview: File/upload store; saves attachments and hands back a stable reference.

"""
Uploads are two-phase: the client uploads a file here first and gets back a
``/uploads/<name>`` reference, then sends that reference as ``file_url`` or
``transfer_proof_url`` on the entity it belongs to.
"""

from __future__ import annotations

import os
import uuid

from flask import current_app
from werkzeug.utils import secure_filename

from ..errors import UpstreamError, ValidationError

URL_PREFIX = "/uploads/"
ALLOWED_EXTENSIONS = {".png", ".jpg", ".jpeg", ".gif", ".webp", ".pdf"}


def upload_folder() -> str:
    return current_app.config["UPLOAD_FOLDER"]


def save_upload(file_storage) -> str:
    """Persist a werkzeug FileStorage and return its public reference."""
    if file_storage is None or not file_storage.filename:
        raise ValidationError("file is required")

    original = secure_filename(file_storage.filename)
    extension = os.path.splitext(original)[1].lower()
    if extension not in ALLOWED_EXTENSIONS:
        raise ValidationError(f"File type not allowed. Allowed: {', '.join(sorted(ALLOWED_EXTENSIONS))}")

    stored_name = f"{uuid.uuid4().hex}{extension}"
    folder = upload_folder()
    try:
        os.makedirs(folder, exist_ok=True)
        file_storage.save(os.path.join(folder, stored_name))
    except OSError as exc:
        current_app.logger.error("Upload failed for %s: %s", original, exc)
        raise UpstreamError("File storage is unavailable; please retry") from exc

    current_app.logger.info("Stored upload %s as %s", original, stored_name)
    return URL_PREFIX + stored_name
