"""Stockage des photos jointes aux demandes de retour (répertoire UPLOAD_DIR)."""
import logging
import os
import re
import time
from typing import NamedTuple, Optional

from starlette.concurrency import run_in_threadpool

from primeur.config import settings
from primeur.returns.constants import (
    ERROR_PHOTO_TOO_LARGE,
    ERROR_PHOTO_TYPE,
    PHOTO_ALLOWED_EXTENSIONS,
    PHOTO_SUBDIR,
)
from primeur.returns.exceptions import InvalidReturnException

logger = logging.getLogger(__name__)


class PhotoUpload(NamedTuple):
    filename: str
    content_type: Optional[str]
    content: bytes


def validate_photo(photo: PhotoUpload) -> None:
    """Image jpeg/jpg/png/gif uniquement (extension et type MIME), taille bornée."""
    extension = os.path.splitext(photo.filename or "")[1].lower()
    if extension not in PHOTO_ALLOWED_EXTENSIONS or photo.content_type not in settings.RETURN_PHOTO_ALLOWED_TYPES:
        raise InvalidReturnException(ERROR_PHOTO_TYPE)
    if len(photo.content) > settings.RETURN_PHOTO_MAX_BYTES:
        raise InvalidReturnException(ERROR_PHOTO_TOO_LARGE)


def _write(path: str, content: bytes) -> None:
    os.makedirs(os.path.dirname(path), exist_ok=True)
    with open(path, "wb") as f:
        f.write(content)


async def save_return_photo(photo: PhotoUpload) -> str:
    """Enregistre la photo et retourne son URL publique (``/uploads/returns/...``)."""
    safe_name = re.sub(r"[^A-Za-z0-9._-]", "_", os.path.basename(photo.filename))
    filename = f"return-{int(time.time() * 1000)}-{safe_name}"
    path = os.path.join(settings.UPLOAD_DIR, PHOTO_SUBDIR, filename)
    await run_in_threadpool(_write, path, photo.content)
    logger.info(f"[ReturnStorage] Photo enregistrée: {path} ({len(photo.content)} octets)")
    return f"/uploads/{PHOTO_SUBDIR}/{filename}"


async def delete_return_photo(url: str) -> None:
    path = os.path.join(settings.UPLOAD_DIR, PHOTO_SUBDIR, os.path.basename(url))
    try:
        await run_in_threadpool(os.remove, path)
    except FileNotFoundError:
        logger.debug(f"[ReturnStorage] Photo déjà absente: {path}")
