import logging
import os
import secrets
import time

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile

from restodesk.config import settings
from restodesk.deps import require_manager

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/manager", tags=["upload"])


# scriptable, so never served back from /uploads
REJECTED_TYPES = {"image/svg+xml"}


def _extension(content_type: str) -> str:
    # image/png -> png, image/vnd.microsoft.icon -> vnd.microsoft.icon
    return content_type.split("/", 1)[1].split("+", 1)[0].split(";", 1)[0].strip() or "bin"


@router.post("/upload-image")
def upload_image(image: UploadFile = File(None), sub: str = Depends(require_manager)):
    if image is None:
        raise HTTPException(400, detail="No file uploaded")
    content_type = image.content_type or ""
    if not content_type.startswith("image/") or content_type.split(";", 1)[0].strip().lower() in REJECTED_TYPES:
        raise HTTPException(400, detail="Only image files are allowed")

    file_name = f"{int(time.time() * 1000)}-{secrets.token_hex(3)}.{_extension(content_type)}"
    os.makedirs(settings.UPLOAD_DIR, exist_ok=True)
    with open(os.path.join(settings.UPLOAD_DIR, file_name), "wb") as f:
        f.write(image.file.read())
    logger.info("stored upload %s (%s)", file_name, content_type)
    return {"success": True, "filePath": f"/uploads/{file_name}"}
