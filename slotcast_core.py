#!/usr/bin/env python3
"""
SLOTCAST Core v1.0 - Live image slots for broadcast browser sources

Single source of truth for what every slot displays.

Transport:
- REST (/api/*) for the control panel
- Socket.IO for live viewers (browser sources) and thin clients

Features:
- Slot registry with write-through JSON persistence
- Scenes: named snapshots, Load (scene -> slots) and Capture (slots -> scene)
- Image library (uploads + external URLs)
- Fan-out of every slot/scene change to all connected viewers
"""

import logging
import os
import time
import traceback
from dataclasses import dataclass
from datetime import datetime

from flask import Flask
from flask_cors import CORS
from flask_socketio import SocketIO
from werkzeug.exceptions import HTTPException

from audit import configure_audit_log
from blueprints.images_bp import create_images_bp
from blueprints.responses import fail
from blueprints.scenes_bp import create_scenes_bp
from blueprints.slots_bp import create_slots_bp
from blueprints.system_bp import create_system_bp
from broadcaster import RealtimeBroadcaster, register_socket_handlers
from config import SlotcastConfig
from errors import SlotcastError
from image_library import ImageLibrary
from scene_manager import SceneManager
from slot_registry import SlotRegistry
from storage import PersistentStore

SLOTCAST_VERSION = "1.0.0"

logger = logging.getLogger('slotcast')

# Multipart framing on top of the raw file size
UPLOAD_OVERHEAD_BYTES = 64 * 1024


def setup_logging(level='INFO'):
    """Console logging for every component logger. Safe to call twice."""
    root = logging.getLogger()
    root.setLevel(getattr(logging, str(level).upper(), logging.INFO))
    if not any(getattr(h, '_slotcast', False) for h in root.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter('%(asctime)s [%(levelname)s] %(name)s: %(message)s'))
        handler._slotcast = True
        root.addHandler(handler)


@dataclass
class SlotcastServices:
    """The one instance of each component for an app; handed to blueprints and socket handlers"""
    config: SlotcastConfig
    store: PersistentStore
    broadcaster: RealtimeBroadcaster
    slot_registry: SlotRegistry
    scene_manager: SceneManager
    image_library: ImageLibrary
    socketio: SocketIO
    audit_log_path: str


def register_error_handlers(app, debug=False):
    """Translate typed errors into the JSON envelope. Components never do this themselves."""

    @app.errorhandler(SlotcastError)
    def handle_slotcast_error(e):
        if e.status_code >= 500:
            logger.error(f"❌ {e.code}: {e.message}")
        return fail(e.message, e.status_code, e.code, **e.context)

    @app.errorhandler(HTTPException)
    def handle_http_error(e):
        code = (e.name or 'HTTP_ERROR').upper().replace(' ', '_')
        return fail(e.description or e.name, e.code or 500, code)

    @app.errorhandler(Exception)
    def handle_unexpected_error(e):
        logger.exception("❌ Unhandled error")
        if debug:
            return fail(str(e) or 'Internal server error', 500, 'SERVER_ERROR', stack=traceback.format_exc())
        return fail('Internal server error', 500, 'SERVER_ERROR')


def create_app(config=None):
    """Build the Flask app, its Socket.IO server and one instance of every component"""
    config = config or SlotcastConfig.from_env()

    app = Flask(__name__)
    app.config['MAX_CONTENT_LENGTH'] = config.max_file_size + UPLOAD_OVERHEAD_BYTES

    CORS(app, resources={r"/api/*": {"origins": config.cors_origins}})
    socketio = SocketIO(app, cors_allowed_origins=config.cors_origins, async_mode='threading')

    audit_log_path = configure_audit_log(config.log_dir)

    store = PersistentStore(config.data_dir)
    store.init()

    broadcaster = RealtimeBroadcaster(socketio)
    slot_registry = SlotRegistry(store.slots, broadcaster=broadcaster)
    scene_manager = SceneManager(store.scenes, slot_registry, broadcaster=broadcaster)
    image_library = ImageLibrary(
        store.images, config.upload_dir,
        public_url=config.public_url, max_file_size=config.max_file_size,
    )

    start_time = time.monotonic()
    app.register_blueprint(create_slots_bp(slot_registry))
    app.register_blueprint(create_scenes_bp(scene_manager))
    app.register_blueprint(create_images_bp(image_library))
    app.register_blueprint(create_system_bp(
        SLOTCAST_VERSION, start_time, slot_registry, scene_manager, image_library, broadcaster,
    ))
    register_socket_handlers(socketio, broadcaster, slot_registry, scene_manager)
    register_error_handlers(app, debug=config.debug)

    app.extensions['slotcast'] = SlotcastServices(
        config=config,
        store=store,
        broadcaster=broadcaster,
        slot_registry=slot_registry,
        scene_manager=scene_manager,
        image_library=image_library,
        socketio=socketio,
        audit_log_path=audit_log_path,
    )
    return app


def main():
    config = SlotcastConfig.from_env()
    setup_logging(config.log_level)
    app = create_app(config)
    services = app.extensions['slotcast']

    print("\n" + "=" * 60)
    print(f"  SLOTCAST Core v{SLOTCAST_VERSION}")
    print("=" * 60)
    print(f"  🚀 Server:   http://{config.host}:{config.port}")
    print(f"  📁 Data:     {os.path.abspath(config.data_dir)}")
    print(f"  📤 Uploads:  {os.path.abspath(config.upload_dir)}")
    print(f"  📝 Audit:    {services.audit_log_path}")
    print(f"  🌐 CORS:     {', '.join(config.cors_origins)}")
    print(f"  🕒 Started:  {datetime.now().isoformat()}")
    print("=" * 60 + "\n")

    services.socketio.run(app, host=config.host, port=config.port, debug=False, allow_unsafe_werkzeug=True)


if __name__ == '__main__':
    main()
