"""Configuration constants for TaleShelf"""

import os
from pathlib import Path

# Data storage paths
DATA_DIR = Path(os.environ.get('TALESHELF_DATA_DIR', Path(__file__).parent / 'taleshelf_data'))
STORAGE_FILE = DATA_DIR / 'storage.json'

# Same ballpark as a browser origin's localStorage allowance
STORAGE_QUOTA_BYTES = int(os.environ.get('TALESHELF_STORAGE_QUOTA', 5 * 1024 * 1024))

LOG_LEVEL = os.environ.get('TALESHELF_LOG_LEVEL', 'INFO')

# Persisted keys
STORIES_KEY = 'stories'
CATEGORIES_KEY = 'categories'
FAVORITES_KEY = 'favorites'
ADMIN_PASSWORD_KEY = 'admin_password'
MEDIA_KEY_PREFIX = 'media_'
MEDIA_KINDS = ('image', 'video', 'audio')

# Admin credentials (fixed pair, checked in memory only)
ADMIN_USERNAME = 'admin'
ADMIN_PASSWORD = 'admin123'
MIN_PASSWORD_LENGTH = 6

MAX_UPLOAD_BYTES = 16 * 1024 * 1024  # 16MB

# Keys remote contexts may only write with an admin session
ADMIN_ONLY_KEYS = (STORIES_KEY, CATEGORIES_KEY, ADMIN_PASSWORD_KEY) + tuple(
    f'{MEDIA_KEY_PREFIX}{kind}' for kind in MEDIA_KINDS
)
# Keys never read or relayed over the socket
PRIVATE_KEYS = (ADMIN_PASSWORD_KEY,)
