"""Identifier allocation for stories, categories and media assets"""

import secrets
import string
import time

_ALPHABET = string.digits + string.ascii_lowercase
SUFFIX_LENGTH = 9


class IdAllocator:
    """Allocates ``<prefix>-<millis>-<random>`` identifiers.

    The millisecond part never repeats or goes backwards within one
    allocator, and the base-36 suffix keeps ids from separate contexts apart
    without any shared counter.
    """

    def __init__(self, clock=time.time):
        self._clock = clock
        self._last_millis = 0

    def _next_millis(self):
        millis = int(self._clock() * 1000)
        if millis <= self._last_millis:
            millis = self._last_millis + 1
        self._last_millis = millis
        return millis

    def allocate(self, prefix):
        suffix = ''.join(secrets.choice(_ALPHABET) for _ in range(SUFFIX_LENGTH))
        return f'{prefix}-{self._next_millis()}-{suffix}'
