"""
SLOTCAST — Scenes Blueprint
Routes: /api/scenes/*
Dependencies: scene_manager
"""

from flask import Blueprint, request

from blueprints.responses import ok
from errors import NotFoundError, ValidationError


def _json_body():
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError('Request body must be a JSON object')
    return data


def create_scenes_bp(scene_manager):
    """Build the scenes blueprint around one SceneManager instance."""
    scenes_bp = Blueprint('scenes', __name__)

    @scenes_bp.route('/api/scenes', methods=['GET'])
    def get_scenes():
        return ok({'scenes': [s.to_dict() for s in scene_manager.list()]})

    @scenes_bp.route('/api/scenes', methods=['POST'])
    def create_scene():
        scene = scene_manager.create(_json_body())
        return ok(scene.to_dict(), status=201)

    @scenes_bp.route('/api/scenes/<scene_id>', methods=['GET'])
    def get_scene(scene_id):
        return ok(scene_manager.get(scene_id).to_dict())

    @scenes_bp.route('/api/scenes/<scene_id>', methods=['PUT'])
    def update_scene(scene_id):
        return ok(scene_manager.update(scene_id, _json_body()).to_dict())

    @scenes_bp.route('/api/scenes/<scene_id>', methods=['DELETE'])
    def delete_scene(scene_id):
        if not scene_manager.delete(scene_id):
            raise NotFoundError('Scene not found', sceneId=scene_id)
        return ok({'sceneId': scene_id}, message='Scene deleted successfully')

    @scenes_bp.route('/api/scenes/<scene_id>/load', methods=['POST'])
    def load_scene(scene_id):
        """Apply the scene to all slots (full replacement); broadcasts scene:loaded"""
        return ok(scene_manager.load(scene_id), message='Scene loaded')

    @scenes_bp.route('/api/scenes/<scene_id>/capture', methods=['POST'])
    def capture_scene(scene_id):
        """Overwrite the scene's slots with the live registry"""
        return ok(scene_manager.capture(scene_id), message='Scene captured')

    @scenes_bp.route('/api/scenes/<scene_id>/duplicate', methods=['POST'])
    def duplicate_scene(scene_id):
        scene = scene_manager.duplicate(scene_id, name=_json_body().get('name'))
        return ok(scene.to_dict(), status=201)

    return scenes_bp
