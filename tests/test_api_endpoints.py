"""
SLOTCAST - API Endpoint Tests

Tests cover REST API endpoints for:
1. Slots (get, update, clear)
2. Scenes CRUD, load, capture, duplicate
3. Images (url, upload, rename, delete)
4. Health / status
5. Error envelope (400 / 404 / 500)
"""

import io
import os
import sys

import pytest
from unittest.mock import patch

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from config import SlotcastConfig
from errors import StorageError
from slotcast_core import create_app


# ============================================================
# Flask App and Test Client Setup
# ============================================================

@pytest.fixture
def app(tmp_path):
    config = SlotcastConfig(
        data_dir=str(tmp_path / "data"),
        upload_dir=str(tmp_path / "uploads"),
        max_file_size=4096,
    )
    app = create_app(config)
    app.config['TESTING'] = True
    return app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def services(app):
    return app.extensions['slotcast']


def create_scene(client, **body):
    response = client.post('/api/scenes', json=body)
    assert response.status_code == 201
    return response.get_json()['data']


# ============================================================
# Slots
# ============================================================

class TestSlotEndpoints:

    def test_get_all_empty(self, client):
        response = client.get('/api/slots')
        assert response.status_code == 200
        assert response.get_json() == {'success': True, 'data': {'slots': {}}}

    def test_get_unset_slot(self, client):
        data = client.get('/api/slots/7').get_json()['data']
        assert data == {'slot': '7', 'imageId': None, 'imageUrl': None, 'updatedAt': None}

    def test_put_slot(self, client):
        response = client.put('/api/slots/1', json={'imageId': 3, 'imageUrl': 'http://x/a.png'})
        assert response.status_code == 200
        data = response.get_json()['data']
        assert data['slot'] == '1'
        assert data['imageId'] == 3
        assert data['imageUrl'] == 'http://x/a.png'
        assert data['updatedAt'] is not None

        slots = client.get('/api/slots').get_json()['data']['slots']
        assert slots['1']['imageUrl'] == 'http://x/a.png'

    def test_put_slot_without_body(self, client):
        data = client.put('/api/slots/1').get_json()['data']
        assert data['imageUrl'] is None
        assert data['updatedAt'] is not None

    def test_put_slot_invalid(self, client):
        response = client.put('/api/slots/1', json={'imageUrl': 123})
        assert response.status_code == 400
        body = response.get_json()
        assert body['success'] is False
        assert body['error']['code'] == 'VALIDATION_ERROR'

    def test_delete_slot(self, client):
        client.put('/api/slots/1', json={'imageUrl': 'http://x/a.png'})
        response = client.delete('/api/slots/1')
        body = response.get_json()
        assert response.status_code == 200
        assert body['message'] == 'Slot cleared'
        assert body['data'] == {'slot': '1', 'imageId': None, 'imageUrl': None, 'updatedAt': None}

    def test_reply_echoes_stored_slot_id(self, client, services):
        response = client.put('/api/slots/a%20', json={'imageUrl': 'http://x/a.png'})
        assert response.get_json()['data']['slot'] == 'a '
        assert list(services.slot_registry.snapshot()) == ['a ']

    def test_whitespace_slot_id_rejected(self, client):
        response = client.put('/api/slots/%20%20', json={'imageUrl': 'http://x/a.png'})
        assert response.status_code == 400
        assert response.get_json()['error']['code'] == 'VALIDATION_ERROR'

    def test_storage_failure_is_500(self, client, services):
        with patch.object(services.store.slots, 'write', side_effect=StorageError('disk full')):
            response = client.put('/api/slots/1', json={'imageUrl': 'http://x/a.png'})
        assert response.status_code == 500
        assert response.get_json()['error']['code'] == 'STORAGE_ERROR'
        assert client.get('/api/slots/1').get_json()['data']['imageUrl'] is None


# ============================================================
# Scenes
# ============================================================

class TestSceneEndpoints:

    def test_create_and_get(self, client):
        scene = create_scene(client, name='Intro', description='opening')
        assert scene['name'] == 'Intro'
        assert scene['slots'] == {}

        fetched = client.get(f"/api/scenes/{scene['id']}").get_json()['data']
        assert fetched == scene

    def test_create_without_name(self, client):
        response = client.post('/api/scenes', json={'name': ''})
        assert response.status_code == 400
        assert response.get_json()['error']['message'] == 'Scene name is required'
        assert client.get('/api/scenes').get_json()['data']['scenes'] == []

    def test_create_with_non_object_body(self, client):
        response = client.post('/api/scenes', json=['Intro'])
        assert response.status_code == 400

    def test_list(self, client):
        create_scene(client, name='A')
        create_scene(client, name='B')
        scenes = client.get('/api/scenes').get_json()['data']['scenes']
        assert [s['name'] for s in scenes] == ['A', 'B']

    def test_unknown_scene_404(self, client):
        for method, path in (('get', '/api/scenes/1'), ('put', '/api/scenes/1'),
                             ('delete', '/api/scenes/1'), ('post', '/api/scenes/1/load'),
                             ('post', '/api/scenes/1/capture'), ('get', '/api/scenes/abc')):
            response = getattr(client, method)(path, json={})
            assert response.status_code == 404, path
            body = response.get_json()
            assert body['success'] is False
            assert body['error']['message'] == 'Scene not found'

    def test_update(self, client):
        scene = create_scene(client, name='Intro')
        response = client.put(f"/api/scenes/{scene['id']}", json={'name': 'Opening'})
        assert response.status_code == 200
        assert response.get_json()['data']['name'] == 'Opening'

    def test_delete(self, client):
        scene = create_scene(client, name='Intro')
        response = client.delete(f"/api/scenes/{scene['id']}")
        assert response.status_code == 200
        assert response.get_json()['message'] == 'Scene deleted successfully'
        assert client.get(f"/api/scenes/{scene['id']}").status_code == 404

    def test_load(self, client):
        client.put('/api/slots/9', json={'imageUrl': 'http://x/old.png'})
        scene = create_scene(client, name='Intro', slots={'1': {'imageUrl': 'http://x/a.png'}})

        response = client.post(f"/api/scenes/{scene['id']}/load")
        body = response.get_json()
        assert response.status_code == 200
        assert body['message'] == 'Scene loaded'
        assert body['data']['sceneId'] == scene['id']
        assert body['data']['sceneName'] == 'Intro'
        assert body['data']['slotsUpdated'] == 1
        assert set(body['data']['allSlots']) == {'1'}

        slots = client.get('/api/slots').get_json()['data']['slots']
        assert set(slots) == {'1'}

    def test_capture(self, client):
        scene = create_scene(client, name='Intro')
        client.put('/api/slots/1', json={'imageUrl': 'http://x/a.png'})

        response = client.post(f"/api/scenes/{scene['id']}/capture")
        data = response.get_json()['data']
        assert response.status_code == 200
        assert data['slotsCaptured'] == 1
        assert data['slots']['1']['imageUrl'] == 'http://x/a.png'

        stored = client.get(f"/api/scenes/{scene['id']}").get_json()['data']
        assert stored['slots']['1']['imageUrl'] == 'http://x/a.png'

    def test_duplicate(self, client):
        scene = create_scene(client, name='Intro')
        response = client.post(f"/api/scenes/{scene['id']}/duplicate", json={})
        assert response.status_code == 201
        assert response.get_json()['data']['name'] == 'Intro (copy)'


# ============================================================
# Images
# ============================================================

class TestImageEndpoints:

    def test_add_url_and_list(self, client):
        response = client.post('/api/images/url', json={'url': 'http://cdn/a.png', 'name': 'A'})
        assert response.status_code == 201
        image = response.get_json()['data']
        assert image['type'] == 'url'
        assert image['originalName'] == 'A'

        images = client.get('/api/images').get_json()['data']['images']
        assert [i['id'] for i in images] == [image['id']]

    def test_add_url_requires_url(self, client):
        response = client.post('/api/images/url', json={})
        assert response.status_code == 400
        assert response.get_json()['error']['message'] == 'URL is required'

    def test_upload_and_serve(self, client):
        payload = b"\x89PNG\r\n\x1a\n" + b"\x01" * 32
        response = client.post(
            '/api/images/upload',
            data={'image': (io.BytesIO(payload), 'logo.png', 'image/png')},
            content_type='multipart/form-data',
        )
        assert response.status_code == 201
        image = response.get_json()['data']
        assert image['url'] == f"http://localhost/uploads/{image['filename']}"

        served = client.get(f"/uploads/{image['filename']}")
        assert served.status_code == 200
        assert served.data == payload

    def test_upload_without_file(self, client):
        response = client.post('/api/images/upload', data={}, content_type='multipart/form-data')
        assert response.status_code == 400
        assert response.get_json()['error']['message'] == 'No file uploaded'

    def test_upload_too_large(self, client):
        payload = b"\x00" * (200 * 1024)
        response = client.post(
            '/api/images/upload',
            data={'image': (io.BytesIO(payload), 'big.png', 'image/png')},
            content_type='multipart/form-data',
        )
        assert response.status_code == 413
        assert response.get_json()['success'] is False

    def test_rename_and_delete(self, client):
        image = client.post('/api/images/url', json={'url': 'http://cdn/a.png'}).get_json()['data']

        renamed = client.put(f"/api/images/{image['id']}", json={'originalName': 'B'}).get_json()['data']
        assert renamed['originalName'] == 'B'

        assert client.delete(f"/api/images/{image['id']}").status_code == 200
        assert client.delete(f"/api/images/{image['id']}").status_code == 404
        assert client.get(f"/api/images/{image['id']}").status_code == 404


# ============================================================
# System
# ============================================================

class TestSystemEndpoints:

    def test_health(self, client):
        body = client.get('/api/health').get_json()
        assert body['status'] == 'healthy'
        assert 'uptime' in body
        assert 'timestamp' in body

    def test_status_counts(self, client):
        client.put('/api/slots/1', json={'imageUrl': 'http://x/a.png'})
        create_scene(client, name='Intro')
        data = client.get('/api/status').get_json()['data']
        assert data['slots'] == 1
        assert data['scenes'] == 1
        assert data['images'] == 0
        assert data['clients'] == 0

    def test_unknown_route_uses_envelope(self, client):
        response = client.get('/api/nope')
        assert response.status_code == 404
        assert response.get_json()['success'] is False

    def test_unexpected_error_hides_detail(self, client, services):
        with patch.object(services.slot_registry, 'snapshot', side_effect=RuntimeError('secret path /etc')):
            response = client.get('/api/slots')
        assert response.status_code == 500
        body = response.get_json()
        assert body['error'] == {'message': 'Internal server error', 'code': 'SERVER_ERROR'}
