"""24-character hexadecimal record identifiers.

Layout follows the familiar ObjectId shape: a 4-byte creation timestamp, a
5-byte per-process random value and a 3-byte counter, so ids sort in
creation order within one process.
"""

import itertools
import re
import secrets
import time
from typing import Any

OBJECT_ID_REGEX = re.compile(r"^[0-9a-fA-F]{24}$")

_PROCESS_RANDOM = secrets.token_hex(5)
_counter = itertools.count(secrets.randbelow(0xFFFFFF))


def new_object_id() -> str:
    timestamp = int(time.time()) & 0xFFFFFFFF
    sequence = next(_counter) & 0xFFFFFF
    return f"{timestamp:08x}{_PROCESS_RANDOM}{sequence:06x}"


def is_valid_object_id(value: Any) -> bool:
    return isinstance(value, str) and bool(OBJECT_ID_REGEX.match(value))
