import logging
import shutil
import uuid
from pathlib import Path
from typing import Optional

from fastapi import UploadFile

logger = logging.getLogger(__name__)

IMAGE_URL_PREFIX = "/images/recipes"


def save_image(upload: Optional[UploadFile], directory) -> Optional[str]:
    """Store an uploaded image under a fresh unique name.

    Returns the public path of the stored file, or None when nothing was
    uploaded. Existing files are never overwritten or removed.
    """
    if upload is None or not upload.filename:
        return None
    folder = Path(directory)
    folder.mkdir(parents=True, exist_ok=True)

    file_name = f"{uuid.uuid4()}{Path(upload.filename).suffix.lower()}"
    target = folder / file_name
    upload.file.seek(0)
    with target.open("wb") as out:
        shutil.copyfileobj(upload.file, out)
    if target.stat().st_size == 0:
        target.unlink()
        return None
    logger.info("Stored image %s", target)
    return f"{IMAGE_URL_PREFIX}/{file_name}"
