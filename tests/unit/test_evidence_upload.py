import pytest

from ccpguard.app.core.errors import EvidenceUploadError
from ccpguard.app.services.evidence_upload import LocalEvidenceUploader


@pytest.mark.asyncio
async def test_upload_writes_file_and_returns_url(tmp_path):
    uploader = LocalEvidenceUploader(directory=str(tmp_path), base_url="/evidence/")
    result = await uploader.upload("../../batch 12.jpg", b"\xff\xd8jpeg")

    assert result["url"].startswith("/evidence/")
    assert result["url"].endswith("-batch_12.jpg")
    stored = list(tmp_path.iterdir())
    assert len(stored) == 1
    assert stored[0].read_bytes() == b"\xff\xd8jpeg"


@pytest.mark.asyncio
async def test_empty_photo_is_rejected(tmp_path):
    uploader = LocalEvidenceUploader(directory=str(tmp_path))
    with pytest.raises(EvidenceUploadError):
        await uploader.upload("photo.jpg", b"")
