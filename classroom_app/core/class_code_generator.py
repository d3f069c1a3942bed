"""Generation of short, unique classroom join codes."""

from __future__ import annotations

import random
import string
from threading import Lock

from classroom_app.constants import store_constants
from classroom_app.core.services.document_store import DocumentStore, Where

_CODE_ALPHABET = string.ascii_uppercase + string.digits
_PREFIX_LENGTH = 3
MAX_ATTEMPTS = 50


class ClassCodeGenerator:
    """Produces codes such as ``K7Q482``: three letters or digits, then 100-999."""

    def __init__(self, rng: random.Random | None = None) -> None:
        self._rng = rng or random.Random()
        self._lock = Lock()

    def generate(self) -> str:
        with self._lock:
            prefix = "".join(self._rng.choice(_CODE_ALPHABET) for _ in range(_PREFIX_LENGTH))
            return f"{prefix}{self._rng.randint(100, 999)}"

    def generate_unique(self, store: DocumentStore) -> str:
        """Regenerate until no classroom already uses the code."""
        for _ in range(MAX_ATTEMPTS):
            code = self.generate()
            taken = store.query(store_constants.CLASSROOMS, [Where("class_code", "==", code)])
            if not taken:
                return code
        raise RuntimeError("Unable to find an unused class code.")
