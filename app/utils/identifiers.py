"""
Local identifier and timestamp helpers.
"""
import secrets
import string
import time

_BASE36 = string.digits + string.ascii_lowercase


def epoch_millis() -> int:
    """Current time in epoch milliseconds."""
    return int(time.time() * 1000)


def generate_local_id(prefix: str) -> str:
    """
    Generate a locally-unique record id.

    Format is ``<prefix>_<epoch ms>_<9 random base36 chars>``.

    Args:
        prefix: Collection-specific prefix (e.g. "farmer", "plot")

    Returns:
        The generated id
    """
    suffix = "".join(secrets.choice(_BASE36) for _ in range(9))
    return f"{prefix}_{epoch_millis()}_{suffix}"
