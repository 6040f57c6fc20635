"""
SLOTCAST Slot Registry - Single Source of Truth for what every slot displays

One instance per process, built by slotcast_core.create_app() and handed
to the REST blueprints, the socket handlers and the scene manager.

WRITE-THROUGH:
- Every mutation builds the new mapping, writes the whole slots document,
  and only then swaps it in. A failed write leaves memory untouched.
- Mutation, persistence and broadcast run under one lock, so viewers
  receive events in the order mutations were applied.
"""

import logging
import os
import threading
from dataclasses import replace
from typing import Callable, Dict, Optional

from audit import audit_log
from models import (
    MonotonicClock, Slot, normalize_slot_id, parse_slot_mapping, slots_from_stored, slots_to_dict,
)

logger = logging.getLogger(__name__)


class SlotRegistry:
    """In-memory slot mapping kept consistent with the slots document"""

    def __init__(self, document, broadcaster=None, clock=None):
        self.document = document
        self.broadcaster = broadcaster
        self.clock = clock or MonotonicClock()
        self.lock = threading.RLock()
        self._slots: Dict[str, Slot] = {}
        self.reload()

    def reload(self):
        """Replace the in-memory view with whatever the store holds"""
        raw = self.document.read()
        with self.lock:
            self._slots = slots_from_stored(raw, os.path.basename(self.document.path))
        logger.info(f"Slot registry loaded ({len(self._slots)} slots)")

    def _commit(self, new_slots):
        # Raises StorageError before anything in memory changes
        self.document.write(slots_to_dict(new_slots))
        self._slots = new_slots

    # ---- Reads ----

    def get_all(self) -> Dict[str, Slot]:
        with self.lock:
            return {slot_id: replace(slot) for slot_id, slot in self._slots.items()}

    def snapshot(self) -> dict:
        """Current mapping in wire format"""
        with self.lock:
            return slots_to_dict(self._slots)

    def get(self, slot_id) -> Slot:
        """Slot state, or the empty default for a slot never set"""
        slot_id = normalize_slot_id(slot_id)
        with self.lock:
            slot = self._slots.get(slot_id)
            return replace(slot) if slot else Slot()

    def __len__(self):
        with self.lock:
            return len(self._slots)

    # ---- Mutations ----

    def set(self, slot_id, data=None) -> Slot:
        """Point a slot at an image. Missing imageId/imageUrl become None."""
        slot_id = normalize_slot_id(slot_id)
        incoming = Slot.from_payload(data)

        with self.lock:
            slot = Slot(
                image_id=incoming.image_id,
                image_url=incoming.image_url,
                updated_at=self.clock.now(),
            )
            self._commit({**self._slots, slot_id: slot})
            if self.broadcaster:
                self.broadcaster.slot_updated(slot_id, slot)

        audit_log('slot_set', slot=slot_id, imageId=slot.image_id, imageUrl=slot.image_url)
        logger.info(f"📺 Slot {slot_id} updated: {slot.image_url}")
        return replace(slot)

    def clear(self, slot_id) -> Slot:
        """Empty a slot. Unlike set() with no image, updatedAt is reset to None."""
        slot_id = normalize_slot_id(slot_id)

        with self.lock:
            slot = Slot()
            self._commit({**self._slots, slot_id: slot})
            if self.broadcaster:
                self.broadcaster.slot_updated(slot_id, slot)

        audit_log('slot_clear', slot=slot_id)
        logger.info(f"🗑️ Slot {slot_id} cleared")
        return replace(slot)

    def replace_all(self, slots, announce: Optional[Callable[[Dict[str, Slot]], None]] = None) -> Dict[str, Slot]:
        """
        Replace the entire registry with `slots` in one document write.

        Exactly one event goes out afterwards: `announce(new_slots)` if given
        (scene load uses it for scene:loaded), otherwise slots:state.
        Nothing from the previous mapping survives.
        """
        new_slots = {slot_id: replace(slot) for slot_id, slot in parse_slot_mapping(slots).items()}

        with self.lock:
            self._commit(new_slots)
            committed = self.get_all()
            if announce:
                announce(committed)
            elif self.broadcaster:
                self.broadcaster.slots_replaced(committed)

        audit_log('slots_replace', count=len(committed))
        logger.info(f"🔁 Slot registry replaced ({len(committed)} slots)")
        return committed
