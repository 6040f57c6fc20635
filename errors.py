"""
SLOTCAST Errors - Typed failures raised by the core components

Components raise these and never build transport responses themselves.
The Flask error handlers (slotcast_core.py) and the socket handlers
(broadcaster.py) translate them into the JSON envelope / `error` event.
"""


class SlotcastError(Exception):
    """Base exception for all SLOTCAST core errors."""
    status_code = 500
    code = 'SERVER_ERROR'

    def __init__(self, message, **context):
        super().__init__(message)
        self.message = message
        self.context = context

    def to_dict(self):
        return {'message': self.message, 'code': self.code, **self.context}


class ValidationError(SlotcastError):
    """Malformed or missing required input."""
    status_code = 400
    code = 'VALIDATION_ERROR'


class NotFoundError(SlotcastError):
    """Reference to an unknown slot, scene or image id."""
    status_code = 404
    code = 'NOT_FOUND'


class StorageError(SlotcastError):
    """Persistent store read/write failed."""
    status_code = 500
    code = 'STORAGE_ERROR'
