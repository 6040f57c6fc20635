"""
SLOTCAST Audit Log - one compact JSON line per state mutation

Persists to <data_dir>/logs/audit.log with rotation once configured at
startup. Until then entries go nowhere (propagate is off so they never
spam the console).
"""

import json
import logging
import os
from logging.handlers import RotatingFileHandler

_audit_logger = logging.getLogger('slotcast.audit')
_audit_logger.setLevel(logging.INFO)
_audit_logger.propagate = False
_audit_logger.addHandler(logging.NullHandler())


def configure_audit_log(log_dir, max_bytes=5 * 1024 * 1024, backup_count=5):
    """Attach the rotating file handler. Returns the audit log path."""
    os.makedirs(log_dir, exist_ok=True)
    path = os.path.join(log_dir, 'audit.log')
    for handler in list(_audit_logger.handlers):
        if isinstance(handler, RotatingFileHandler):
            _audit_logger.removeHandler(handler)
            handler.close()
    handler = RotatingFileHandler(path, maxBytes=max_bytes, backupCount=backup_count, encoding='utf-8')
    handler.setFormatter(logging.Formatter('%(asctime)s %(message)s', datefmt='%Y-%m-%dT%H:%M:%S'))
    _audit_logger.addHandler(handler)
    return path


def audit_log(event_type, **kwargs):
    """Write a structured audit log entry."""
    entry = json.dumps({'event': event_type, **kwargs}, separators=(',', ':'), default=str)
    _audit_logger.info(entry)
