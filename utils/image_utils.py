import io
import os
import threading
from pathlib import Path
from urllib.parse import quote

import pillow_heif
from PIL import Image

# iOS pickers often hand over HEIC/HEIF; Pl@ntNet only takes JPEG/PNG
pillow_heif.register_heif_opener()

TEMP_FILENAME = "plant_tmp.jpg"

_STAGING_LOCK = threading.Lock()


def encode_jpeg(image_bytes: bytes, quality: int = 90) -> bytes:
    """
    Decode any Pillow-readable image and re-encode it as an RGB JPEG.
    Raises ValueError when the bytes are not a usable image.
    """
    if not image_bytes:
        raise ValueError("Empty image.")
    try:
        with Image.open(io.BytesIO(image_bytes)) as im:
            im = im.convert("RGB")
            out = io.BytesIO()
            im.save(out, format="JPEG", quality=quality, optimize=True)
    except (OSError, ValueError, Image.DecompressionBombError) as e:
        raise ValueError(f"Could not encode image as JPEG: {e}") from e
    return out.getvalue()


def user_folder_name(user_id: str) -> str:
    # percent-encode everything incl. "." so ids like "../x" stay one plain folder
    return quote(user_id, safe="").replace(".", "%2E")


def user_image_dir(images_dir: Path, user_id: str) -> Path:
    root = Path(images_dir).resolve()
    folder = (root / user_folder_name(user_id)).resolve()
    if folder.parent != root:
        raise ValueError(f"Invalid user id for image storage: {user_id!r}")
    return folder


def write_staging_copy(cache_dir: Path, jpeg_bytes: bytes) -> Path:
    """Write the fixed-name staging copy. Concurrent runs take turns."""
    path = Path(cache_dir) / TEMP_FILENAME
    with _STAGING_LOCK:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(jpeg_bytes)
    return path


def write_exclusive(directory: Path, jpeg_bytes: bytes, millis: int) -> Path:
    """
    Writes plant_<millis>.jpg into directory without ever replacing an
    existing file; bumps millis until a free name is found.
    Returns the absolute path of the new file. A failed write leaves no file.
    """
    directory = Path(directory)
    directory.mkdir(parents=True, exist_ok=True)
    while True:
        path = directory / f"plant_{millis}.jpg"
        try:
            f = open(path, "xb")
        except FileExistsError:
            millis += 1
            continue
        try:
            with f:
                f.write(jpeg_bytes)
        except OSError:
            remove_quietly(path)
            raise
        return path.resolve()


def remove_quietly(path: str | os.PathLike) -> bool:
    """Best-effort delete. Returns True if a file was removed."""
    try:
        os.remove(path)
        return True
    except FileNotFoundError:
        return False
