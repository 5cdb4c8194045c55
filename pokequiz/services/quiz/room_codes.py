import random
from typing import Iterable, Optional

from pokequiz.errors import RoomCodeExhaustedError

# No 0/O or 1/I/L
ROOM_CODE_CHARS = 'ABCDEFGHJKLMNPQRSTUVWXYZ23456789'
ROOM_CODE_LENGTH = 4
MAX_ATTEMPTS = 100


def normalize_room_code(code: str) -> str:
    return (code or '').strip().upper()


def allocate_room_code(active_codes: Iterable[str], rng: Optional[random.Random] = None) -> str:
    """Pick a short code that no live session is using."""
    rng = rng or random
    taken = set(active_codes)
    for _ in range(MAX_ATTEMPTS):
        code = ''.join(rng.choices(ROOM_CODE_CHARS, k=ROOM_CODE_LENGTH))
        if code not in taken:
            return code
    raise RoomCodeExhaustedError(f'Failed to generate a unique room code after {MAX_ATTEMPTS} attempts.')
