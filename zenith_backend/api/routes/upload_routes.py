import os

from flask import Blueprint, request, jsonify, current_app, send_from_directory

from zenith_backend.errors import ValidationError
from zenith_backend.services.file_storage import LocalFileStorage

upload_bp = Blueprint("upload_bp", __name__)


@upload_bp.post("/api/upload")
def upload_files():
    """Stand-alone upload (e.g. before the order exists). Files land under uploads/misc/."""
    files = [f for f in request.files.getlist("files") if f and f.filename]
    if not files:
        raise ValidationError("No files uploaded (field 'files').")
    storage = LocalFileStorage()
    urls = [storage.save("", f, subdir="misc") for f in files]
    current_app.logger.info("[UPLOAD] stored %d file(s)", len(urls))
    return jsonify({"ok": True, "urls": urls}), 201


@upload_bp.get("/uploads/<path:filename>")
def serve_upload(filename: str):
    return send_from_directory(os.path.abspath(current_app.config["UPLOAD_FOLDER"]), filename)
