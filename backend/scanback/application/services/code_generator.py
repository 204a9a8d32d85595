"""Opaque code issuance."""

import re
import uuid

_ALPHABET = re.compile(r"^[0-9A-F]+$")


class CodeGenerator:
    """Produces fixed-length uppercase codes from a random 128-bit UUID4.

    The default 12 hex characters keep printed tags short while collisions
    stay rare enough to be handled by a plain regenerate-and-retry.
    """

    def __init__(self, length: int = 12):
        if not 8 <= length <= 32:
            raise ValueError("Code length must be between 8 and 32")
        self._length = length

    @property
    def length(self) -> int:
        return self._length

    def generate(self) -> str:
        return uuid.uuid4().hex[: self._length].upper()

    @staticmethod
    def normalize(code: str) -> str:
        return code.strip().upper()

    def is_well_formed(self, code: str) -> bool:
        """True if ``code`` (already normalized) could have been issued here."""
        return len(code) == self._length and bool(_ALPHABET.match(code))
