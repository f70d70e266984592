# Overview: Service-layer operations for image files (product photos, spending receipts).

"""
Local image storage.

Images live under UPLOAD_FOLDER in one sub-folder per kind. Records store
the path relative to UPLOAD_FOLDER ("receipts/12_1718000000000.jpg"), so the
folder can move without rewriting rows.

Deletion is best-effort: a missing or locked file is logged and reported as
False, never raised, because the owning record has already been written.
"""

from __future__ import annotations

import os
import time
from pathlib import Path

from flask import current_app
from werkzeug.datastructures import FileStorage
from werkzeug.utils import secure_filename

from ..validation import ValidationError

RECEIPTS_FOLDER = "receipts"
PRODUCTS_FOLDER = "products"

ALLOWED_EXTENSIONS = {"jpg", "jpeg", "png", "webp"}


def upload_root() -> Path:
    folder = Path(current_app.config.get("UPLOAD_FOLDER") or "uploads")
    if not folder.is_absolute():
        folder = Path(current_app.instance_path) / folder
    return folder


def _extension(filename: str) -> str:
    name = secure_filename(filename or "")
    if "." not in name:
        return ""
    return name.rsplit(".", 1)[1].lower()


def save_image(file: FileStorage, folder: str, owner_id: int) -> str:
    """
    Store an uploaded image and return its relative path.

    Raises:
        ValidationError: no file, or extension not allowed
    """
    if file is None or not file.filename:
        raise ValidationError("File gambar wajib diunggah")

    ext = _extension(file.filename)
    if ext not in ALLOWED_EXTENSIONS:
        raise ValidationError(f"Format gambar harus salah satu dari: {', '.join(sorted(ALLOWED_EXTENSIONS))}")

    target_dir = upload_root() / folder
    target_dir.mkdir(parents=True, exist_ok=True)

    filename = f"{owner_id}_{int(time.time() * 1000)}.{ext}"
    file.save(target_dir / filename)
    current_app.logger.info("Image saved to %s/%s", folder, filename)
    return f"{folder}/{filename}"


def resolve_image(image_path: str, folder: str) -> Path | None:
    """Absolute path for a stored image, or None if it points outside folder."""
    if not image_path:
        return None
    base = (upload_root() / folder).resolve()
    candidate = (upload_root() / image_path).resolve()
    if base != candidate.parent:
        return None
    return candidate


def delete_image(image_path: str | None, folder: str) -> bool:
    """
    Delete a stored image. Only files inside the given folder are touched.

    Returns True if a file was removed.
    """
    if not image_path:
        return False
    path = resolve_image(image_path, folder)
    if path is None:
        current_app.logger.warning("Refusing to delete image outside %s: %s", folder, image_path)
        return False
    try:
        os.remove(path)
    except FileNotFoundError:
        return False
    except OSError:
        current_app.logger.exception("Failed to delete image %s", image_path)
        return False
    current_app.logger.info("Image deleted: %s", image_path)
    return True
