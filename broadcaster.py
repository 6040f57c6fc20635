"""
SLOTCAST Realtime Broadcaster - Socket.IO fan-out and inbound control events

Outbound (to every connected client, not just the originator):
    slot:updated    {slot, imageId, imageUrl, timestamp}
    scene:loaded    {sceneId, sceneName, slots, allSlots}
    slots:state     {slots, timestamp}
    scenes:updated  {scenes}

Inbound (alternate control path, routed through the same registry and
scene manager as the REST blueprints):
    slot:update {slot, imageUrl, imageId}
    slot:clear  {slot}
    scene:load  {sceneId}
    ping        -> pong (sender only)

Failures on the inbound path come back as an `error` event addressed to
the sender only, never broadcast.
"""

import logging
import threading

from flask import request
from flask_socketio import emit

from errors import SlotcastError
from models import slots_to_dict, utc_now

logger = logging.getLogger(__name__)


class RealtimeBroadcaster:
    """Pushes state changes to all connected viewers"""

    def __init__(self, socketio=None):
        self.socketio = socketio
        self.lock = threading.Lock()
        self._clients = set()

    def _emit(self, event, payload):
        if not self.socketio:
            return
        try:
            self.socketio.emit(event, payload)
        except Exception as e:
            logger.error(f"Broadcast of {event} failed: {e}")

    # ---- Outbound ----

    def slot_updated(self, slot_id, slot):
        self._emit('slot:updated', {
            'slot': slot_id,
            'imageId': slot.image_id,
            'imageUrl': slot.image_url,
            'timestamp': slot.updated_at or utc_now(),
        })

    def slots_replaced(self, slots):
        self._emit('slots:state', {'slots': slots_to_dict(slots), 'timestamp': utc_now()})

    def scene_loaded(self, scene, all_slots):
        self._emit('scene:loaded', {
            'sceneId': scene.id,
            'sceneName': scene.name,
            'slots': slots_to_dict(scene.slots),
            'allSlots': slots_to_dict(all_slots),
        })

    def scenes_updated(self, scenes):
        self._emit('scenes:updated', {'scenes': scenes})

    # ---- Connection tracking ----

    def client_connected(self, sid):
        with self.lock:
            self._clients.add(sid)

    def client_disconnected(self, sid):
        with self.lock:
            self._clients.discard(sid)

    @property
    def client_count(self):
        with self.lock:
            return len(self._clients)


def _payload(data):
    return data if isinstance(data, dict) else {}


def register_socket_handlers(socketio, broadcaster, slot_registry, scene_manager):
    """Wire inbound Socket.IO events to the registry and scene manager"""

    def reply_error(error, **context):
        emit('error', {**error.to_dict(), **context})

    def guarded(handler):
        # Typed errors -> sender-only `error` event; anything else is logged
        def wrapper(*args):
            try:
                handler(_payload(args[0] if args else None))
            except SlotcastError as e:
                logger.warning(f"Socket {handler.__name__} rejected: {e.message}")
                reply_error(e)
            except Exception:
                logger.exception(f"Socket {handler.__name__} failed")
                emit('error', {'message': 'Internal server error', 'code': 'SERVER_ERROR'})
        wrapper.__name__ = handler.__name__
        return wrapper

    @socketio.on('connect')
    def handle_connect(auth=None):
        broadcaster.client_connected(request.sid)
        logger.info(f"🔌 Client connected: {request.sid}")
        emit('connection:status', {
            'status': 'connected',
            'clientId': request.sid,
            'timestamp': utc_now(),
        })
        emit('slots:state', {'slots': slot_registry.snapshot(), 'timestamp': utc_now()})

    @socketio.on('disconnect')
    def handle_disconnect(reason=None):
        broadcaster.client_disconnected(request.sid)
        logger.info(f"🔌 Client disconnected: {request.sid}")

    @socketio.on('slot:update')
    @guarded
    def slot_update(data):
        slot_registry.set(data.get('slot'), {
            'imageId': data.get('imageId'),
            'imageUrl': data.get('imageUrl'),
        })

    @socketio.on('slot:clear')
    @guarded
    def slot_clear(data):
        slot_registry.clear(data.get('slot'))

    @socketio.on('scene:load')
    @guarded
    def scene_load(data):
        scene_manager.load(data.get('sceneId'))

    @socketio.on('ping')
    def handle_ping(data=None):
        emit('pong')
