import logging
import mimetypes
import os
import uuid
from typing import Optional, Tuple

logger = logging.getLogger(__name__)


class ObjectStorage:
    """Stores uploaded photo bytes on the local filesystem.

    Uploads follow three steps: :meth:`create_upload` reserves an object id,
    the bytes are written with :meth:`write`, and :meth:`normalize_path`
    turns the upload URL into the ``/objects/uploads/<id>`` path kept on the
    photo row.
    """

    PREFIX = "/objects/uploads/"

    def __init__(self, root: str = "uploads") -> None:
        self.root = root
        os.makedirs(self.root, exist_ok=True)

    def _path(self, object_id: str) -> str:
        safe = os.path.basename(object_id)
        if not safe or safe != object_id:
            raise ValueError("object not found")
        return os.path.join(self.root, safe)

    def create_upload(self, base_url: str = "") -> dict:
        object_id = str(uuid.uuid4())
        return {
            "object_id": object_id,
            "upload_url": f"{base_url.rstrip('/')}/api/objects/uploads/{object_id}",
        }

    def write(self, object_id: str, data: bytes) -> str:
        path = self._path(object_id)
        with open(path, "wb") as f:
            f.write(data)
        logger.info("stored object %s (%d bytes)", object_id, len(data))
        return self.PREFIX + object_id

    def normalize_path(self, url: str) -> str:
        """Return the stable display path for an upload URL or object path."""
        marker = "/uploads/"
        if marker not in url:
            raise ValueError("invalid upload url")
        object_id = url.split(marker, 1)[1].split("?", 1)[0].strip("/")
        if not os.path.exists(self._path(object_id)):
            raise ValueError("object not found")
        return self.PREFIX + object_id

    def read(self, object_path: str) -> Tuple[bytes, str]:
        object_id = object_path.rstrip("/").rsplit("/", 1)[-1]
        path = self._path(object_id)
        if not os.path.exists(path):
            raise ValueError("object not found")
        with open(path, "rb") as f:
            data = f.read()
        media_type: Optional[str] = mimetypes.guess_type(path)[0]
        if media_type is None:
            if data.startswith(b"\xff\xd8\xff"):
                media_type = "image/jpeg"
            elif data.startswith(b"\x89PNG"):
                media_type = "image/png"
        return data, media_type or "application/octet-stream"

    def delete(self, object_path: str) -> None:
        object_id = object_path.rstrip("/").rsplit("/", 1)[-1]
        path = self._path(object_id)
        if not os.path.exists(path):
            raise ValueError("object not found")
        os.remove(path)
