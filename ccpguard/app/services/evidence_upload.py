"""
Evidence upload for corrective actions.

The surrounding back-office owns file storage; the workflow only needs
``upload(filename, content) -> {"url": ...}``. LocalEvidenceUploader stores
photos on disk under ``settings.evidence_dir``.
"""
import asyncio
import logging
import re
import uuid
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, Optional

from ccpguard.app.core.config import get_settings
from ccpguard.app.core.errors import EvidenceUploadError

logger = logging.getLogger(__name__)

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]")


class EvidenceUploader(ABC):
    """Abstract evidence upload collaborator."""

    @abstractmethod
    async def upload(self, filename: str, content: bytes) -> Dict[str, str]:
        ...


class LocalEvidenceUploader(EvidenceUploader):
    def __init__(self, directory: Optional[str] = None, base_url: Optional[str] = None):
        settings = get_settings()
        self.directory = Path(directory or settings.evidence_dir)
        self.base_url = (base_url or settings.evidence_base_url).rstrip("/")

    def _write(self, name: str, content: bytes) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        (self.directory / name).write_bytes(content)

    async def upload(self, filename: str, content: bytes) -> Dict[str, str]:
        if not content:
            raise EvidenceUploadError("Evidence photo is empty")

        safe_name = _UNSAFE_CHARS.sub("_", Path(filename).name) or "photo"
        stored_name = f"{uuid.uuid4().hex}-{safe_name}"
        try:
            await asyncio.to_thread(self._write, stored_name, content)
        except OSError as e:
            raise EvidenceUploadError(f"Could not store evidence photo: {e}") from e

        logger.info(f"Evidence photo stored as {stored_name} ({len(content)} bytes)")
        return {"url": f"{self.base_url}/{stored_name}"}
