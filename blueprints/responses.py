"""
SLOTCAST — JSON envelope shared by every blueprint

    {success: true,  data?: ..., message?: ...}
    {success: false, error: {message, code}}
"""

from flask import jsonify


def ok(data=None, status=200, message=None):
    body = {'success': True}
    if message:
        body['message'] = message
    if data is not None:
        body['data'] = data
    return jsonify(body), status


def fail(message, status, code='SERVER_ERROR', **extra):
    return jsonify({'success': False, 'error': {'message': message, 'code': code, **extra}}), status
