"""
Join code allocation.

Codes are short (3 chars by default) so they can be read aloud and typed on a
phone. Alphabet: uppercase letters and digits minus the look-alikes I/O/0/1.
At length 3 that is 32**3 = 32,768 codes, so collisions are rare and the
attempt budget only guards against a broken random source or a saturated
store.

Allocation is read-only. The code is not reserved; the caller inserts the
group right after, and the unique index on event_groups.joinCode rejects the
loser of a concurrent race.
"""

from __future__ import annotations

import logging
import secrets
from collections.abc import Callable, Sequence

from services.crew.errors import AllocationExhausted
from services.crew.store import CrewStore

logger = logging.getLogger(__name__)

JOIN_CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
DEFAULT_CODE_LENGTH = 3
MAX_ATTEMPTS = 15

# choice(alphabet) -> one character
RandomChoice = Callable[[Sequence[str]], str]


def generate_code(length: int = DEFAULT_CODE_LENGTH, choice: RandomChoice = secrets.choice) -> str:
    """Draw ``length`` characters uniformly from the join-code alphabet."""
    if length < 1:
        raise ValueError(f"join code length must be positive, got {length}")
    return "".join(choice(JOIN_CODE_ALPHABET) for _ in range(length))


def normalize_code(code: str) -> str:
    """Canonical (stored) form of a user-typed code."""
    return code.strip().upper()


class CodeAllocator:
    """
    Finds a join code not currently used by any group.

    Usage:
        allocator = CodeAllocator(store)
        code = await allocator.allocate()         # "K7M"

    ``generator`` is injectable so tests can script the candidate sequence.
    """

    def __init__(
        self,
        store: CrewStore,
        *,
        generator: Callable[[int], str] = generate_code,
        max_attempts: int = MAX_ATTEMPTS,
    ) -> None:
        self._store = store
        self._generator = generator
        self.max_attempts = max_attempts

    async def allocate(self, length: int = DEFAULT_CODE_LENGTH) -> str:
        """
        Return a free code of ``length`` characters.

        Raises:
            AllocationExhausted: every one of ``max_attempts`` candidates was
                already taken.
        """
        for attempt in range(1, self.max_attempts + 1):
            candidate = self._generator(length)
            if not await self._store.group_code_exists(candidate):
                if attempt > 1:
                    logger.info(
                        "join_code_allocated code=%s attempts=%d", candidate, attempt
                    )
                return candidate
            logger.debug("join_code_collision candidate=%s attempt=%d", candidate, attempt)

        logger.error(
            "join_code_exhausted length=%d attempts=%d", length, self.max_attempts
        )
        raise AllocationExhausted(attempts=self.max_attempts, length=length)
