"""
SLOTCAST Configuration - Environment-based with sensible defaults

    SLOTCAST_HOST           bind address (0.0.0.0)
    SLOTCAST_PORT           REST + Socket.IO port (3000)
    SLOTCAST_DATA_DIR       JSON documents + logs (./data)
    SLOTCAST_UPLOAD_DIR     uploaded image files (./uploads)
    SLOTCAST_CORS_ORIGINS   extra allowed origins, comma-separated
    SLOTCAST_PUBLIC_URL     external base URL used in uploaded image URLs
    SLOTCAST_MAX_FILE_SIZE  upload limit in bytes (10 MB)
    SLOTCAST_DEBUG          include error detail in 500 responses
    SLOTCAST_LOG_LEVEL      console log level (INFO)
"""

import os
from dataclasses import dataclass, field
from typing import List, Optional

BASE_DIR = os.path.dirname(os.path.abspath(__file__))

# Control panel dev server
DEFAULT_CORS_ORIGINS = [
    "http://localhost:5173",
]


def get_allowed_origins(env_value=None):
    """Default origins plus any from SLOTCAST_CORS_ORIGINS"""
    origins = DEFAULT_CORS_ORIGINS.copy()
    if env_value is None:
        env_value = os.environ.get('SLOTCAST_CORS_ORIGINS', '')
    for origin in env_value.split(','):
        origin = origin.strip()
        if origin and origin not in origins:
            origins.append(origin)
    return origins


def _env_flag(name, default=False):
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


@dataclass
class SlotcastConfig:
    host: str = '0.0.0.0'
    port: int = 3000
    data_dir: str = os.path.join(BASE_DIR, 'data')
    upload_dir: str = os.path.join(BASE_DIR, 'uploads')
    cors_origins: List[str] = field(default_factory=lambda: DEFAULT_CORS_ORIGINS.copy())
    public_url: Optional[str] = None
    max_file_size: int = 10 * 1024 * 1024
    debug: bool = False
    log_level: str = 'INFO'

    @property
    def log_dir(self):
        return os.path.join(self.data_dir, 'logs')

    @classmethod
    def from_env(cls) -> "SlotcastConfig":
        defaults = cls()
        return cls(
            host=os.environ.get('SLOTCAST_HOST', defaults.host),
            port=int(os.environ.get('SLOTCAST_PORT', defaults.port)),
            data_dir=os.environ.get('SLOTCAST_DATA_DIR', defaults.data_dir),
            upload_dir=os.environ.get('SLOTCAST_UPLOAD_DIR', defaults.upload_dir),
            cors_origins=get_allowed_origins(),
            public_url=os.environ.get('SLOTCAST_PUBLIC_URL') or None,
            max_file_size=int(os.environ.get('SLOTCAST_MAX_FILE_SIZE', defaults.max_file_size)),
            debug=_env_flag('SLOTCAST_DEBUG'),
            log_level=os.environ.get('SLOTCAST_LOG_LEVEL', defaults.log_level).upper(),
        )
