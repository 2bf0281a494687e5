"""Key-value blob stores for the persisted event mapping."""
import errno
import logging
import os
import tempfile
from pathlib import Path
from typing import Dict, Optional

logger = logging.getLogger(__name__)


class BlobQuotaExceededError(OSError):
    """Write rejected because the store is full."""

    def __init__(self, key: str, size: int, quota: int):
        super().__init__(
            errno.ENOSPC,
            f"Blob '{key}' of {size} bytes exceeds quota of {quota} bytes"
        )
        self.key = key
        self.size = size
        self.quota = quota


class MemoryBlobStore:
    """In-process blob store with an optional size quota."""

    def __init__(self, quota_bytes: Optional[int] = None):
        self.quota_bytes = quota_bytes
        self._blobs: Dict[str, str] = {}

    def read(self, key: str) -> Optional[str]:
        return self._blobs.get(key)

    def write(self, key: str, data: str) -> None:
        size = len(data.encode('utf-8'))
        if self.quota_bytes is not None and size > self.quota_bytes:
            raise BlobQuotaExceededError(key, size, self.quota_bytes)
        self._blobs[key] = data


class FileBlobStore:
    """Blob store keeping one JSON file per key in a directory."""

    def __init__(self, directory):
        """
        Initialize the file blob store.

        Args:
            directory: Directory holding the blob files (created on first write)
        """
        self.directory = Path(directory).expanduser()
        logger.info(f"Initialized FileBlobStore in: {self.directory}")

    def path_for(self, key: str) -> Path:
        return self.directory / f"{key}.json"

    def read(self, key: str) -> Optional[str]:
        """
        Read a blob.

        Returns:
            Blob contents or None if the file does not exist

        Raises:
            OSError: if the file exists but cannot be read
        """
        path = self.path_for(key)
        if not path.exists():
            return None
        return path.read_text(encoding='utf-8')

    def write(self, key: str, data: str) -> None:
        """
        Replace a blob atomically (temp file + rename).

        Raises:
            OSError: if the directory or file cannot be written
        """
        self.directory.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{key}-", suffix='.json', dir=str(self.directory)
        )
        try:
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                f.write(data)
            os.replace(tmp_name, self.path_for(key))
        finally:
            if os.path.exists(tmp_name):
                os.remove(tmp_name)
