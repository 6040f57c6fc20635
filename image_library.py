"""
SLOTCAST Image Library - uploaded files and external URLs

Keeps the images document and the uploads directory in step. The slot
core never looks at pixels; it only consumes (id, url) pairs from here.
No format conversion happens on upload.
"""

import copy
import logging
import os
import secrets
import threading
from dataclasses import replace
from typing import List, Optional

from werkzeug.utils import secure_filename

from audit import audit_log
from errors import NotFoundError, ValidationError
from models import IMAGE_TYPES, Image, TimeIdGenerator, utc_now

logger = logging.getLogger(__name__)

ALLOWED_MIME_TYPES = {
    'image/png': 'png',
    'image/jpeg': 'jpeg',
    'image/jpg': 'jpeg',
    'image/gif': 'gif',
    'image/webp': 'webp',
}
DEFAULT_MAX_FILE_SIZE = 10 * 1024 * 1024  # 10 MB


def _coerce_image_id(image_id):
    if isinstance(image_id, bool):
        return None
    try:
        return int(image_id)
    except (TypeError, ValueError):
        return None


class ImageLibrary:
    """CRUD over Image records with write-through to the images document"""

    def __init__(self, document, upload_dir, public_url=None, max_file_size=DEFAULT_MAX_FILE_SIZE,
                 id_generator=None):
        self.document = document
        self.upload_dir = upload_dir
        self.public_url = public_url.rstrip('/') if public_url else None
        self.max_file_size = max_file_size
        self.ids = id_generator or TimeIdGenerator()
        self.lock = threading.RLock()
        self._images: List[Image] = []
        self.reload()

    def reload(self):
        raw = self.document.read()
        with self.lock:
            self._images = [Image.from_dict(item) for item in raw if isinstance(item, dict)]
            for image in self._images:
                self.ids.seed(image.id)

    def _commit(self, new_images):
        self.document.write([image.to_dict() for image in new_images])
        self._images = new_images

    def _index_of(self, image_id) -> int:
        target = _coerce_image_id(image_id)
        if target is not None:
            for i, image in enumerate(self._images):
                if image.id == target:
                    return i
        return -1

    def __len__(self):
        with self.lock:
            return len(self._images)

    def list(self, image_type: Optional[str] = None) -> List[Image]:
        if image_type is not None and image_type not in IMAGE_TYPES:
            raise ValidationError(f"Unknown image type: {image_type}")
        with self.lock:
            images = [img for img in self._images if image_type is None or img.type == image_type]
            return copy.deepcopy(images)

    def get(self, image_id) -> Image:
        with self.lock:
            index = self._index_of(image_id)
            if index < 0:
                raise NotFoundError('Image not found', imageId=image_id)
            return copy.deepcopy(self._images[index])

    def add_url(self, url, name=None) -> Image:
        """Register an external image by URL"""
        if not isinstance(url, str) or not url.strip():
            raise ValidationError('URL is required')
        if name is not None and not isinstance(name, str):
            raise ValidationError('name must be a string')

        with self.lock:
            image = Image(
                id=self.ids.next_id(),
                url=url.strip(),
                original_name=name or 'External Image',
                type='url',
                created_at=utc_now(),
            )
            self._commit(self._images + [image])

        audit_log('image_add_url', imageId=image.id, url=image.url)
        logger.info(f"🔗 Image added from URL: {image.url}")
        return copy.deepcopy(image)

    def add_upload(self, file, base_url=None) -> Image:
        """
        Store an uploaded file (werkzeug FileStorage) and register it.

        The URL is <public_url>/uploads/<filename> when a public URL is
        configured, otherwise <base_url>/uploads/<filename>.
        """
        if file is None or not file.filename:
            raise ValidationError('No file uploaded')
        mime_type = (file.mimetype or '').lower()
        if mime_type not in ALLOWED_MIME_TYPES:
            raise ValidationError('Invalid file type. Only PNG, JPG, GIF, and WebP are allowed.')

        original_name = file.filename
        extension = os.path.splitext(secure_filename(original_name))[1].lower()
        filename = secrets.token_hex(16) + extension
        path = os.path.join(self.upload_dir, filename)

        os.makedirs(self.upload_dir, exist_ok=True)
        file.save(path)
        size = os.path.getsize(path)
        if size > self.max_file_size:
            os.unlink(path)
            raise ValidationError(f"File too large (max {self.max_file_size} bytes)")

        root = self.public_url or (base_url or '').rstrip('/')
        try:
            with self.lock:
                image = Image(
                    id=self.ids.next_id(),
                    url=f"{root}/uploads/{filename}",
                    original_name=original_name,
                    type='uploaded',
                    filename=filename,
                    mime_type=mime_type,
                    size=size,
                    format=ALLOWED_MIME_TYPES[mime_type],
                    created_at=utc_now(),
                )
                self._commit(self._images + [image])
        except Exception:
            # Record never made it to disk, drop the orphaned file
            os.unlink(path)
            raise

        audit_log('image_upload', imageId=image.id, filename=filename, size=size)
        logger.info(f"📤 Image uploaded: {original_name} ({size / 1024:.2f} KB) -> {image.url}")
        return copy.deepcopy(image)

    def update(self, image_id, data) -> Image:
        """Rename an image. Only originalName is editable."""
        if not isinstance(data, dict):
            raise ValidationError('Image data must be an object')
        name = data.get('originalName')
        if 'originalName' in data and (not isinstance(name, str) or not name.strip()):
            raise ValidationError('originalName must be a non-empty string')

        with self.lock:
            index = self._index_of(image_id)
            if index < 0:
                raise NotFoundError('Image not found', imageId=image_id)
            updated = self._images[index]
            if name is not None:
                updated = replace(updated, original_name=name.strip())
            new_images = list(self._images)
            new_images[index] = updated
            self._commit(new_images)
        return copy.deepcopy(updated)

    def delete(self, image_id) -> bool:
        """Remove an image record; uploaded files are deleted from disk too"""
        with self.lock:
            index = self._index_of(image_id)
            if index < 0:
                return False
            image = self._images[index]
            self._commit(self._images[:index] + self._images[index + 1:])

        if image.type == 'uploaded' and image.filename:
            try:
                os.unlink(os.path.join(self.upload_dir, image.filename))
                logger.info(f"🗑️ Image file deleted: {image.filename}")
            except OSError as e:
                logger.warning(f"Failed to delete image file {image.filename}: {e}")

        audit_log('image_delete', imageId=image.id)
        return True
