"""
SLOTCAST — Slots Blueprint
Routes: /api/slots/*
Dependencies: slot_registry
"""

from flask import Blueprint, request

from blueprints.responses import ok
from models import normalize_slot_id


def create_slots_bp(slot_registry):
    """Build the slots blueprint around one SlotRegistry instance."""
    slots_bp = Blueprint('slots', __name__)

    @slots_bp.route('/api/slots', methods=['GET'])
    def get_slots():
        return ok({'slots': slot_registry.snapshot()})

    @slots_bp.route('/api/slots/<slot_id>', methods=['GET'])
    def get_slot(slot_id):
        slot_id = normalize_slot_id(slot_id)
        slot = slot_registry.get(slot_id)
        return ok({'slot': slot_id, **slot.to_dict()})

    @slots_bp.route('/api/slots/<slot_id>', methods=['PUT'])
    def update_slot(slot_id):
        """Point a slot at an image; broadcasts slot:updated"""
        slot_id = normalize_slot_id(slot_id)
        data = request.get_json(silent=True)
        slot = slot_registry.set(slot_id, data if data is not None else {})
        return ok({'slot': slot_id, **slot.to_dict()})

    @slots_bp.route('/api/slots/<slot_id>', methods=['DELETE'])
    def clear_slot(slot_id):
        slot_id = normalize_slot_id(slot_id)
        slot = slot_registry.clear(slot_id)
        return ok({'slot': slot_id, **slot.to_dict()}, message='Slot cleared')

    return slots_bp
