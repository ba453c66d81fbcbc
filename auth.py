"""Admin session flag.

The flag lives in memory only and is gone after a restart. The web app keeps
one per client in its signed session cookie instead. A changed password is
saved, but logging in still checks the fixed credentials.
"""

import logging

from config import ADMIN_PASSWORD, ADMIN_PASSWORD_KEY, ADMIN_USERNAME, MIN_PASSWORD_LENGTH
from storage import PersistenceError, load_json, save_json
from stores import PERSISTENCE_FAILURE, VALIDATION, Result

logger = logging.getLogger(__name__)


def check_credentials(username, password):
    """Compare against the fixed admin pair."""
    if username == ADMIN_USERNAME and password == ADMIN_PASSWORD:
        return True
    logger.info('Rejected admin login for %r', username)
    return False


class AdminSession:
    def __init__(self, storage):
        self.storage = storage
        self.is_authenticated = False

    def login(self, username, password):
        """Set the flag on a match. A failed attempt leaves it as it was."""
        if not check_credentials(username, password):
            return False
        self.is_authenticated = True
        return True

    def logout(self):
        self.is_authenticated = False

    def stored_password(self):
        return load_json(self.storage, ADMIN_PASSWORD_KEY)

    def change_password(self, current, new, confirm):
        if current != ADMIN_PASSWORD:
            return Result.fail(VALIDATION, 'Current password is incorrect')
        if len(new or '') < MIN_PASSWORD_LENGTH:
            return Result.fail(VALIDATION, f'New password must be at least {MIN_PASSWORD_LENGTH} characters')
        if new != confirm:
            return Result.fail(VALIDATION, 'New passwords do not match')

        try:
            save_json(self.storage, ADMIN_PASSWORD_KEY, new)
        except PersistenceError as e:
            return Result.fail(PERSISTENCE_FAILURE, str(e))
        return Result.ok()
