"""
SLOTCAST — System Blueprint
Routes: /api/health, /api/status, /uploads/<filename>
Dependencies: version constants, start time, slot_registry, scene_manager, image_library, broadcaster
"""

import time
from datetime import datetime

from flask import Blueprint, jsonify, send_from_directory


def create_system_bp(version, start_time, slot_registry, scene_manager, image_library, broadcaster):
    """Health/status routes plus static serving of uploaded images."""
    system_bp = Blueprint('system', __name__)

    @system_bp.route('/api/health', methods=['GET'])
    def health():
        uptime_s = time.monotonic() - start_time
        return jsonify({
            'status': 'healthy',
            'version': version,
            'uptime': round(uptime_s, 1),
            'uptime_human': f"{int(uptime_s//3600)}h {int((uptime_s%3600)//60)}m {int(uptime_s%60)}s",
            'timestamp': datetime.now().isoformat(),
        })

    @system_bp.route('/api/status', methods=['GET'])
    def status():
        return jsonify({
            'success': True,
            'data': {
                'version': version,
                'slots': len(slot_registry),
                'scenes': len(scene_manager),
                'images': len(image_library),
                'clients': broadcaster.client_count,
                'timestamp': datetime.now().isoformat(),
            },
        })

    @system_bp.route('/uploads/<path:filename>', methods=['GET'])
    def serve_upload(filename):
        return send_from_directory(image_library.upload_dir, filename)

    return system_bp
