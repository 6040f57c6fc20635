"""
SLOTCAST Data Models - Slots, Scenes and Images

Canonical dataclasses shared by the registry, the scene manager and the
image library. Wire format uses the camelCase keys the control panel and
browser sources expect (imageId, imageUrl, updatedAt, ...).
"""

import threading
import time
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional, Tuple

from errors import StorageError, ValidationError


IMAGE_TYPES = ('uploaded', 'url')


# ============================================================
# Clocks & IDs
# ============================================================

class MonotonicClock:
    """ISO-8601 UTC timestamps that never repeat or go backwards.

    Two mutations landing in the same microsecond (or a wall clock step
    backwards) still get strictly increasing `updatedAt` values.
    """

    def __init__(self):
        self.lock = threading.Lock()
        self._last = None

    def now(self) -> str:
        with self.lock:
            current = datetime.now(timezone.utc)
            if self._last is not None and current <= self._last:
                current = self._last + timedelta(microseconds=1)
            self._last = current
        return format_timestamp(current)


class TimeIdGenerator:
    """Millisecond time-based ids, strictly increasing per generator"""

    def __init__(self):
        self.lock = threading.Lock()
        self._last = 0

    def seed(self, value):
        """Make sure future ids are above an id already handed out (e.g. loaded from disk)"""
        with self.lock:
            try:
                value = int(value)
            except (TypeError, ValueError):
                return
            if value > self._last:
                self._last = value

    def next_id(self) -> int:
        with self.lock:
            candidate = int(time.time() * 1000)
            if candidate <= self._last:
                candidate = self._last + 1
            self._last = candidate
            return candidate


def format_timestamp(value: datetime) -> str:
    # Fixed width so string order matches time order
    return value.isoformat(timespec='microseconds').replace('+00:00', 'Z')


def utc_now() -> str:
    return format_timestamp(datetime.now(timezone.utc))


# ============================================================
# Slot
# ============================================================

def normalize_slot_id(slot_id) -> str:
    """Slot ids are operator-defined; stored as strings (JSON object keys)"""
    if isinstance(slot_id, bool) or slot_id is None:
        raise ValidationError('Slot id is required')
    if isinstance(slot_id, int):
        return str(slot_id)
    if isinstance(slot_id, str) and slot_id.strip():
        return slot_id
    raise ValidationError('Slot id must be a non-empty string or integer')


def _normalize_image_id(value):
    if not value:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, str)):
        raise ValidationError('imageId must be a string or integer')
    return value


def _normalize_image_url(value):
    if not value:
        return None
    if not isinstance(value, str):
        raise ValidationError('imageUrl must be a string')
    return value


@dataclass
class Slot:
    """
    Display state of one slot.

    A slot with image_url None is empty. updated_at None marks a slot that
    was explicitly cleared (or never set); set() with empty values still
    stamps updated_at.
    """
    image_id: Optional[Any] = None
    image_url: Optional[str] = None
    updated_at: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        return self.image_url is None

    def to_dict(self) -> dict:
        return {
            "imageId": self.image_id,
            "imageUrl": self.image_url,
            "updatedAt": self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Slot":
        return cls(
            image_id=data.get("imageId") or None,
            image_url=data.get("imageUrl") or None,
            updated_at=data.get("updatedAt") or None,
        )

    @classmethod
    def from_payload(cls, data, keep_timestamp: bool = False) -> "Slot":
        """Validate an untrusted slot body (REST body, socket payload, scene snapshot)"""
        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ValidationError('Slot data must be an object')
        updated_at = None
        if keep_timestamp:
            updated_at = data.get("updatedAt") or None
            if updated_at is not None and not isinstance(updated_at, str):
                raise ValidationError('updatedAt must be a string')
        return cls(
            image_id=_normalize_image_id(data.get("imageId")),
            image_url=_normalize_image_url(data.get("imageUrl")),
            updated_at=updated_at,
        )


def parse_slot_mapping(data) -> Dict[str, Slot]:
    """Validate a full slot-id -> slot mapping (scene snapshots, replace_all)"""
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError('slots must be an object keyed by slot id')
    slots = {}
    for slot_id, slot_data in data.items():
        slot = slot_data if isinstance(slot_data, Slot) else Slot.from_payload(slot_data, keep_timestamp=True)
        slots[normalize_slot_id(slot_id)] = slot
    return slots


def slots_to_dict(slots: Dict[str, Slot]) -> dict:
    return {slot_id: slot.to_dict() for slot_id, slot in slots.items()}


def slots_from_stored(data, source: str) -> Dict[str, Slot]:
    """Rebuild a slot mapping read from disk; malformed entries are a StorageError"""
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise StorageError(f"{source} holds malformed slots", document=source)
    slots = {}
    for slot_id, slot_data in data.items():
        if slot_data is None:
            slot_data = {}
        if not isinstance(slot_data, dict):
            raise StorageError(f"{source} holds a malformed entry for slot {slot_id}",
                               document=source, slot=str(slot_id))
        slots[str(slot_id)] = Slot.from_dict(slot_data)
    return slots


# ============================================================
# Scene
# ============================================================

@dataclass
class Scene:
    """A named snapshot of a complete slot mapping."""
    id: int
    name: str
    description: str = ""
    slots: Dict[str, Slot] = field(default_factory=dict)
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "slots": slots_to_dict(self.slots),
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: dict, source: str = "scenes.json") -> "Scene":
        if not isinstance(data, dict):
            raise StorageError(f"{source} holds a malformed scene entry", document=source)
        scene_id = coerce_scene_id(data.get("id"))
        if scene_id is None:
            raise StorageError(f"{source} holds a scene without a valid id",
                               document=source, sceneId=data.get("id"))
        return cls(
            id=scene_id,
            name=data.get("name", ""),
            description=data.get("description") or "",
            slots=slots_from_stored(data.get("slots"), source),
            created_at=data.get("createdAt"),
            updated_at=data.get("updatedAt"),
        )


def coerce_scene_id(scene_id) -> Optional[int]:
    """Scene ids are ints; URL params and socket payloads may carry strings"""
    if isinstance(scene_id, bool):
        return None
    try:
        return int(scene_id)
    except (TypeError, ValueError):
        return None


def validate_scene_data(data: dict, partial: bool = False) -> Tuple[bool, Optional[str]]:
    """Validate Scene creation/update data"""
    if not isinstance(data, dict):
        return False, "Scene data must be an object"

    if not partial or "name" in data:
        name = data.get("name")
        if not isinstance(name, str) or not name.strip():
            return False, "Scene name is required"

    description = data.get("description")
    if description is not None and not isinstance(description, str):
        return False, "Scene description must be a string"

    slots = data.get("slots")
    if slots is not None and not isinstance(slots, dict):
        return False, "Scene slots must be an object keyed by slot id"

    return True, None


# ============================================================
# Image
# ============================================================

@dataclass
class Image:
    """Library entry; the slot core only ever uses (id, url)."""
    id: int
    url: str
    original_name: str
    type: str = "url"
    filename: Optional[str] = None
    mime_type: Optional[str] = None
    size: Optional[int] = None
    format: Optional[str] = None
    created_at: Optional[str] = None

    def to_dict(self) -> dict:
        data = {
            "id": self.id,
            "url": self.url,
            "originalName": self.original_name,
            "type": self.type,
            "createdAt": self.created_at,
        }
        # Optional fields are omitted rather than sent as null
        for key, value in (("filename", self.filename), ("mimeType", self.mime_type),
                           ("size", self.size), ("format", self.format)):
            if value is not None:
                data[key] = value
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "Image":
        return cls(
            id=data.get("id"),
            url=data.get("url", ""),
            original_name=data.get("originalName", ""),
            type=data.get("type", "url"),
            filename=data.get("filename"),
            mime_type=data.get("mimeType"),
            size=data.get("size"),
            format=data.get("format"),
            created_at=data.get("createdAt"),
        )
