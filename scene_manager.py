"""
SLOTCAST Scene Manager - Named snapshots of the slot registry

The SceneManager is responsible for:
- Scene creation, update, duplication and deletion
- Load: scene -> slot registry (full replacement, never a merge)
- Capture: slot registry -> scene (overwrites the scene's slots in place)

Scenes are mutually independent: loading scene B leaves nothing behind
from scene A. Deleting a scene never touches the slot registry.

All failures are ValidationError or NotFoundError (StorageError comes
straight from the store).
"""

import copy
import logging
import os
import threading
from dataclasses import replace
from typing import List, Optional

from audit import audit_log
from errors import NotFoundError, ValidationError
from models import (
    MonotonicClock, Scene, TimeIdGenerator,
    coerce_scene_id, parse_slot_mapping, slots_to_dict, validate_scene_data,
)

logger = logging.getLogger(__name__)


class SceneManager:
    """Scene CRUD with write-through to the scenes document"""

    def __init__(self, document, slot_registry, broadcaster=None, clock=None, id_generator=None):
        self.document = document
        self.slot_registry = slot_registry
        self.broadcaster = broadcaster
        self.clock = clock or MonotonicClock()
        self.ids = id_generator or TimeIdGenerator()
        self.lock = threading.RLock()
        self._scenes: List[Scene] = []
        self.reload()

    def reload(self):
        raw = self.document.read()
        with self.lock:
            source = os.path.basename(self.document.path)
            self._scenes = [Scene.from_dict(item, source) for item in raw]
            for scene in self._scenes:
                self.ids.seed(scene.id)
        logger.info(f"Scene manager loaded ({len(self._scenes)} scenes)")

    def _commit(self, new_scenes):
        self.document.write([scene.to_dict() for scene in new_scenes])
        self._scenes = new_scenes
        if self.broadcaster:
            self.broadcaster.scenes_updated([scene.to_dict() for scene in new_scenes])

    def _index_of(self, scene_id) -> int:
        target = coerce_scene_id(scene_id)
        if target is not None:
            for i, scene in enumerate(self._scenes):
                if scene.id == target:
                    return i
        return -1

    # ---- CRUD ----

    def list(self) -> List[Scene]:
        """All scenes, in creation order"""
        with self.lock:
            return copy.deepcopy(self._scenes)

    def get(self, scene_id) -> Scene:
        with self.lock:
            index = self._index_of(scene_id)
            if index < 0:
                raise NotFoundError('Scene not found', sceneId=scene_id)
            return copy.deepcopy(self._scenes[index])

    def __len__(self):
        with self.lock:
            return len(self._scenes)

    def create(self, data) -> Scene:
        """Create a scene. `name` is required; slots default to empty."""
        valid, error = validate_scene_data(data)
        if not valid:
            raise ValidationError(error)
        slots = parse_slot_mapping(data.get('slots'))

        with self.lock:
            now = self.clock.now()
            scene = Scene(
                id=self.ids.next_id(),
                name=data['name'].strip(),
                description=data.get('description') or '',
                slots=slots,
                created_at=now,
                updated_at=now,
            )
            self._commit(self._scenes + [scene])

        audit_log('scene_create', sceneId=scene.id, name=scene.name)
        logger.info(f"🎬 Scene created: {scene.name} ({scene.id})")
        return copy.deepcopy(scene)

    def update(self, scene_id, data) -> Scene:
        """Merge name/description/slots into a scene. Anything else (id, createdAt) is ignored."""
        valid, error = validate_scene_data(data, partial=True)
        if not valid:
            raise ValidationError(error)

        changes = {}
        if 'name' in data:
            changes['name'] = data['name'].strip()
        if 'description' in data:
            changes['description'] = data['description'] or ''
        if 'slots' in data:
            # Full replacement snapshot, never a partial diff
            changes['slots'] = parse_slot_mapping(data['slots'])

        with self.lock:
            index = self._index_of(scene_id)
            if index < 0:
                raise NotFoundError('Scene not found', sceneId=scene_id)
            updated = replace(self._scenes[index], updated_at=self.clock.now(), **changes)
            new_scenes = list(self._scenes)
            new_scenes[index] = updated
            self._commit(new_scenes)

        audit_log('scene_update', sceneId=updated.id, fields=sorted(changes))
        logger.info(f"✏️ Scene updated: {updated.name}")
        return copy.deepcopy(updated)

    def delete(self, scene_id) -> bool:
        """True if a scene was removed. Slot registry is left as is."""
        with self.lock:
            index = self._index_of(scene_id)
            if index < 0:
                return False
            removed = self._scenes[index]
            self._commit(self._scenes[:index] + self._scenes[index + 1:])

        audit_log('scene_delete', sceneId=removed.id)
        logger.info(f"🗑️ Scene deleted: {removed.name}")
        return True

    def duplicate(self, scene_id, name: Optional[str] = None) -> Scene:
        source = self.get(scene_id)
        return self.create({
            'name': name if name is not None else f"{source.name} (copy)",
            'description': source.description,
            'slots': source.slots,
        })

    # ---- Scene <-> Slot Registry ----

    def load(self, scene_id) -> dict:
        """
        Apply a scene to the slot registry (overwrite).

        Broadcasts a single scene:loaded event carrying the full resulting
        mapping, so viewers that missed earlier slot events resync.
        """
        scene = self.get(scene_id)

        def announce(all_slots):
            if self.broadcaster:
                self.broadcaster.scene_loaded(scene, all_slots)

        all_slots = self.slot_registry.replace_all(scene.slots, announce=announce)

        audit_log('scene_load', sceneId=scene.id, slots=len(scene.slots))
        logger.info(f"▶️ Scene loaded: {scene.name} ({len(scene.slots)} slots)")
        return {
            'sceneId': scene.id,
            'sceneName': scene.name,
            'slotsUpdated': len(scene.slots),
            'allSlots': slots_to_dict(all_slots),
        }

    def capture(self, scene_id) -> dict:
        """Save the live slot registry into an existing scene (overwrite, no new scene)"""
        with self.lock:
            if self._index_of(scene_id) < 0:
                raise NotFoundError('Scene not found', sceneId=scene_id)
            snapshot = self.slot_registry.get_all()
            scene = self.update(scene_id, {'slots': snapshot})

        audit_log('scene_capture', sceneId=scene.id, slots=len(scene.slots))
        logger.info(f"📸 Scene captured: {scene.name} ({len(scene.slots)} slots)")
        return {
            'sceneId': scene.id,
            'sceneName': scene.name,
            'slotsCaptured': len(scene.slots),
            'slots': slots_to_dict(scene.slots),
        }
