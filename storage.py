"""
SLOTCAST Persistent Store - Flat JSON document collections

Three independent documents live in the data directory:
    slots.json   {slot_id: slot}
    scenes.json  [scene, ...]
    images.json  [image, ...]

Every write replaces the whole document. Writes go to a temp file in the
same directory and are moved into place with os.replace, so a reader sees
either the previous document or the new one, never a partial file.
"""

import copy
import json
import logging
import os
import tempfile
import threading

from errors import StorageError

logger = logging.getLogger(__name__)


class JsonDocument:
    """One whole-document JSON collection"""

    def __init__(self, path, default):
        self.path = path
        self.default = default
        self.lock = threading.Lock()

    def _empty(self):
        return copy.deepcopy(self.default)

    def ensure(self):
        """Create the file with the empty default if it does not exist yet"""
        if not os.path.exists(self.path):
            self.write(self._empty())

    def read(self):
        with self.lock:
            if not os.path.exists(self.path):
                return self._empty()
            try:
                with open(self.path, 'r', encoding='utf-8') as f:
                    document = json.load(f)
            except (OSError, ValueError) as e:
                raise StorageError(f"Could not read {os.path.basename(self.path)}: {e}")

        if not isinstance(document, type(self.default)):
            raise StorageError(
                f"{os.path.basename(self.path)} holds a {type(document).__name__}, "
                f"expected {type(self.default).__name__}"
            )
        return document

    def write(self, document):
        directory = os.path.dirname(self.path) or '.'
        with self.lock:
            tmp_path = None
            try:
                os.makedirs(directory, exist_ok=True)
                fd, tmp_path = tempfile.mkstemp(prefix='.tmp-', suffix='.json', dir=directory)
                with os.fdopen(fd, 'w', encoding='utf-8') as f:
                    json.dump(document, f, indent=2)
                    f.flush()
                    os.fsync(f.fileno())
                os.replace(tmp_path, self.path)
                tmp_path = None
            except (OSError, TypeError, ValueError) as e:
                raise StorageError(f"Could not write {os.path.basename(self.path)}: {e}")
            finally:
                if tmp_path and os.path.exists(tmp_path):
                    try:
                        os.unlink(tmp_path)
                    except OSError:
                        logger.warning(f"Could not remove temp file {tmp_path}")
        return True


class PersistentStore:
    """
    Durable state for slots, scenes and images.

    The store owns durable state; components keep their own in-memory views
    and write through here before acknowledging a mutation.
    """

    def __init__(self, data_dir):
        self.data_dir = data_dir
        self.slots = JsonDocument(os.path.join(data_dir, 'slots.json'), {})
        self.scenes = JsonDocument(os.path.join(data_dir, 'scenes.json'), [])
        self.images = JsonDocument(os.path.join(data_dir, 'images.json'), [])

    def init(self):
        """Create the data directory and any missing collection files"""
        try:
            os.makedirs(self.data_dir, exist_ok=True)
        except OSError as e:
            raise StorageError(f"Could not create data directory {self.data_dir}: {e}")
        for document in (self.slots, self.scenes, self.images):
            document.ensure()
        logger.info(f"📁 Persistent storage initialized at {self.data_dir}")
