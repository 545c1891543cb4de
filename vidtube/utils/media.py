"""
Local media store used for avatars and cover images.

Files land in MEDIA_ROOT/<folder>/<timestamp>_<name> and are served back under
MEDIA_URL_PREFIX. upload() returns None instead of raising when nothing usable
was stored, so callers decide whether a missing asset is fatal.
"""
from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterable, Mapping

from flask import current_app
from werkzeug.datastructures import FileStorage
from werkzeug.utils import secure_filename

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MediaAsset:
    public_id: str
    url: str


class LocalMediaStore:
    def __init__(self, root: str | Path, url_prefix: str = "/media", allowed_extensions: Iterable[str] = ()):
        self.root = Path(root)
        self.url_prefix = "/" + url_prefix.strip("/")
        self.allowed_extensions = {ext.strip().lower().lstrip(".") for ext in allowed_extensions if ext.strip()}
        self.root.mkdir(parents=True, exist_ok=True)

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> "LocalMediaStore":
        return cls(
            root=config["MEDIA_ROOT"],
            url_prefix=config.get("MEDIA_URL_PREFIX", "/media"),
            allowed_extensions=config.get("ALLOWED_IMAGE_EXTENSIONS", ()),
        )

    def _allowed(self, filename: str) -> bool:
        if not self.allowed_extensions:
            return True
        suffix = Path(filename).suffix.lower().lstrip(".")
        return suffix in self.allowed_extensions

    def url_for(self, public_id: str) -> str:
        return f"{self.url_prefix}/{public_id}"

    def public_id_from_url(self, url: str | None) -> str | None:
        if not url or not url.startswith(self.url_prefix + "/"):
            return None
        return url[len(self.url_prefix) + 1:]

    def upload(self, file: FileStorage | None, folder: str = "uploads") -> MediaAsset | None:
        if file is None or not file.filename:
            return None
        filename = secure_filename(file.filename)
        if not filename or not self._allowed(filename):
            logger.warning("Rejected upload %r: extension not allowed", file.filename)
            return None

        target_dir = self.root / folder
        stamp = datetime.now(timezone.utc).strftime("%Y%m%d%H%M%S")
        stored_name = f"{stamp}_{uuid.uuid4().hex[:8]}_{filename}"
        try:
            target_dir.mkdir(parents=True, exist_ok=True)
            file.save(target_dir / stored_name)
        except OSError:
            logger.exception("Could not store upload %s", filename)
            return None

        public_id = f"{folder}/{stored_name}"
        return MediaAsset(public_id=public_id, url=self.url_for(public_id))

    def destroy(self, public_id: str | None) -> bool:
        """Delete a stored asset; returns False when there was nothing to delete."""
        if not public_id:
            return False
        path = (self.root / public_id).resolve()
        if self.root.resolve() not in path.parents or not path.is_file():
            return False
        path.unlink()
        return True


def get_media_store() -> LocalMediaStore:
    return current_app.extensions["media_store"]
