# zenith_backend/services/file_storage.py
from __future__ import annotations

import os
import shutil
import tempfile
import uuid
import zipfile

from flask import current_app
from werkzeug.utils import secure_filename

from zenith_backend.errors import ValidationError, NotFoundError

URL_PREFIX = "/uploads"


class LocalFileStorage:
    """Files live under <UPLOAD_FOLDER>/orders/<orderNo>/ and are served from /uploads/."""

    def __init__(self, root: str | None = None):
        self.root = os.path.abspath(root or current_app.config["UPLOAD_FOLDER"])

    def _order_dir(self, order_no: str) -> str:
        safe = secure_filename(order_no or "")
        if not safe:
            raise ValidationError("Order number is not usable as a storage key.")
        return os.path.join(self.root, "orders", safe)

    def url_to_path(self, url: str) -> str | None:
        if not url or not url.startswith(URL_PREFIX + "/"):
            return None
        rel = url[len(URL_PREFIX) + 1:]
        path = os.path.abspath(os.path.join(self.root, *rel.split("/")))
        if not path.startswith(self.root + os.sep):
            return None
        return path

    def save(self, order_no: str, file, subdir: str | None = None) -> str:
        """Store one uploaded werkzeug FileStorage; returns its public URL."""
        filename = secure_filename(getattr(file, "filename", "") or "")
        if not filename:
            raise ValidationError("Uploaded file has no usable name.")

        target_dir = self._order_dir(order_no) if subdir is None else os.path.join(self.root, secure_filename(subdir) or "misc")
        os.makedirs(target_dir, exist_ok=True)
        stored = f"{uuid.uuid4().hex[:12]}_{filename}"
        file.save(os.path.join(target_dir, stored))

        rel = os.path.relpath(os.path.join(target_dir, stored), self.root).replace(os.sep, "/")
        return f"{URL_PREFIX}/{rel}"

    def delete_prefix(self, order_no: str) -> int:
        """Remove every file stored for the order. Returns the number of files removed."""
        target_dir = self._order_dir(order_no)
        if not os.path.isdir(target_dir):
            return 0
        count = sum(len(files) for _, _, files in os.walk(target_dir))
        shutil.rmtree(target_dir, ignore_errors=True)
        current_app.logger.info("[ORDER] released %d stored file(s) for %s", count, order_no)
        return count

    def delete_urls(self, urls) -> None:
        for url in urls or []:
            path = self.url_to_path(url)
            if path and os.path.isfile(path):
                os.remove(path)

    def export_archive(self, urls) -> str:
        """Zip the given files into a temporary file and return its path. Caller removes it."""
        paths = [p for p in (self.url_to_path(u) for u in urls or []) if p and os.path.isfile(p)]
        if not paths:
            raise NotFoundError("No files stored for this order.")

        fd, zip_path = tempfile.mkstemp(suffix=".zip")
        os.close(fd)
        with zipfile.ZipFile(zip_path, "w", compression=zipfile.ZIP_DEFLATED) as zf:
            for path in paths:
                zf.write(path, arcname=os.path.basename(path))
        return zip_path
