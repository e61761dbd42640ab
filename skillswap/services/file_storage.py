"""
Profile Picture File Storage

Local-disk store for uploaded profile images. Enforces the size ceiling and
the image type allowlist, returning stable /uploads/... references.
"""
import logging
import time
import uuid
from pathlib import Path
from typing import Optional

from skillswap import config
from skillswap.exceptions import UploadRejected

logger = logging.getLogger(__name__)

ALLOWED_EXTENSIONS = {".jpeg", ".jpg", ".png", ".gif", ".webp"}
ALLOWED_CONTENT_TYPES = {"image/jpeg", "image/jpg", "image/png", "image/gif", "image/webp"}

PROFILE_PICS_SUBDIR = "profile_pics"
PUBLIC_PREFIX = "/uploads"


class FileStorage:
    """Stores files under root_dir and hands out /uploads/<subdir>/<name> references"""

    def __init__(self, root_dir: Optional[str] = None, max_bytes: Optional[int] = None):
        self.root_dir = Path(root_dir or config.UPLOAD_DIR)
        self.max_bytes = max_bytes if max_bytes is not None else config.MAX_UPLOAD_BYTES

    def validate_image(self, filename: str, content_type: Optional[str], size: int) -> str:
        """
        Check an upload against the allowlist and size ceiling.

        Returns:
            The lower-cased file extension

        Raises:
            UploadRejected: Empty file, too large, or not an allowed image type
        """
        if size == 0:
            raise UploadRejected("No file uploaded", field="profile_pic")
        if size > self.max_bytes:
            limit_mb = self.max_bytes / (1024 * 1024)
            raise UploadRejected(
                f"File too large: limit is {limit_mb:.0f}MB",
                field="profile_pic",
                details={"size": size, "max_bytes": self.max_bytes},
            )

        extension = Path(filename or "").suffix.lower()
        if extension not in ALLOWED_EXTENSIONS or (content_type or "").lower() not in ALLOWED_CONTENT_TYPES:
            raise UploadRejected(
                "Only image files (jpeg, jpg, png, gif, webp) are allowed",
                field="profile_pic",
                details={"filename": filename, "content_type": content_type},
            )
        return extension

    def save_profile_pic(self, user_id: int, filename: str, content_type: Optional[str], data: bytes) -> str:
        extension = self.validate_image(filename, content_type, len(data))

        target_dir = self.root_dir / PROFILE_PICS_SUBDIR
        target_dir.mkdir(parents=True, exist_ok=True)

        unique_suffix = f"{int(time.time() * 1000)}-{uuid.uuid4().hex[:9]}"
        stored_name = f"profile-{user_id}-{unique_suffix}{extension}"
        (target_dir / stored_name).write_bytes(data)

        logger.info(f"Stored profile picture for user {user_id}: {stored_name} ({len(data)} bytes)")
        return f"{PUBLIC_PREFIX}/{PROFILE_PICS_SUBDIR}/{stored_name}"

    def resolve(self, ref: str) -> Optional[Path]:
        """Map a public reference back to a path inside root_dir (None if it points elsewhere)"""
        if not ref or not ref.startswith(PUBLIC_PREFIX + "/"):
            return None
        relative = ref[len(PUBLIC_PREFIX) + 1:]
        path = (self.root_dir / relative).resolve()
        if self.root_dir.resolve() not in path.parents:
            return None
        return path

    def delete(self, ref: str) -> bool:
        path = self.resolve(ref)
        if path is None or not path.exists():
            return False
        path.unlink()
        logger.info(f"Deleted stored file {ref}")
        return True


# Singleton instance
_file_storage_instance: Optional[FileStorage] = None


def get_file_storage() -> FileStorage:
    """Get singleton instance of FileStorage"""
    global _file_storage_instance
    if _file_storage_instance is None:
        _file_storage_instance = FileStorage()
    return _file_storage_instance
