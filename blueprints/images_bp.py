"""
SLOTCAST — Images Blueprint
Routes: /api/images/*
Dependencies: image_library
"""

from flask import Blueprint, request

from blueprints.responses import ok
from errors import NotFoundError


def create_images_bp(image_library):
    """Build the images blueprint around one ImageLibrary instance."""
    images_bp = Blueprint('images', __name__)

    @images_bp.route('/api/images', methods=['GET'])
    def get_images():
        images = image_library.list(image_type=request.args.get('type'))
        return ok({'images': [img.to_dict() for img in images]})

    @images_bp.route('/api/images/<image_id>', methods=['GET'])
    def get_image(image_id):
        return ok(image_library.get(image_id).to_dict())

    @images_bp.route('/api/images/upload', methods=['POST'])
    def upload_image():
        image = image_library.add_upload(request.files.get('image'), base_url=request.host_url)
        return ok(image.to_dict(), status=201)

    @images_bp.route('/api/images/url', methods=['POST'])
    def add_image_url():
        data = request.get_json(silent=True) or {}
        image = image_library.add_url(data.get('url'), name=data.get('name'))
        return ok(image.to_dict(), status=201)

    @images_bp.route('/api/images/<image_id>', methods=['PUT'])
    def update_image(image_id):
        data = request.get_json(silent=True) or {}
        return ok(image_library.update(image_id, data).to_dict())

    @images_bp.route('/api/images/<image_id>', methods=['DELETE'])
    def delete_image(image_id):
        if not image_library.delete(image_id):
            raise NotFoundError('Image not found', imageId=image_id)
        return ok({'imageId': image_id}, message='Image deleted successfully')

    return images_bp
