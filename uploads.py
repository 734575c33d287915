"""
Flat-file image storage. Files land in UPLOAD_DIR and are served back under
/uploads by the static mount in main.py.
"""
import base64
import binascii
import logging
import os
import re
import time

import aiofiles

from errors import StoreError

logger = logging.getLogger(__name__)

URL_PREFIX = "/uploads"
DATA_URL_PREFIX = re.compile(r"^data:image/[a-z+.-]+;base64,", re.IGNORECASE)


def _unique_name(filename: str) -> str:
    name = os.path.basename(filename or "").strip() or "image.png"
    return f"{int(time.time() * 1000)}-{name}"


async def save_image(content: bytes, filename: str, upload_dir: str) -> str:
    os.makedirs(upload_dir, exist_ok=True)
    name = _unique_name(filename)
    async with aiofiles.open(os.path.join(upload_dir, name), "wb") as f:
        await f.write(content)
    logger.info("Stored upload %s (%d bytes)", name, len(content))
    return f"{URL_PREFIX}/{name}"


async def save_base64_image(data: str, filename: str, upload_dir: str) -> str:
    try:
        content = base64.b64decode(DATA_URL_PREFIX.sub("", data), validate=True)
    except (binascii.Error, ValueError):
        raise StoreError("Invalid base64 image data")
    return await save_image(content, filename, upload_dir)
