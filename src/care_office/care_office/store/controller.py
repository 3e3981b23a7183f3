from __future__ import annotations

import io
import mimetypes

from flask import Flask, send_file

from ..container import Container
from ..core.exceptions import NotFoundError, StorageError


def register(app: Flask, container: Container) -> None:
    prefix = app.config.get("STORAGE_PUBLIC_URL", "/files").rstrip("/")

    @app.route(f"{prefix}/<bucket>/<path:path>", methods=["GET"], endpoint="stored_file")
    def stored_file(bucket: str, path: str):
        try:
            content = container.storage.download(bucket, path)
        except StorageError as e:
            if e.code == "404":
                raise NotFoundError("File not found") from None
            raise
        mimetype = mimetypes.guess_type(path)[0] or "application/octet-stream"
        return send_file(io.BytesIO(content), mimetype=mimetype, download_name=path.rsplit("/", 1)[-1])
