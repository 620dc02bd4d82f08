"""
ID generation utilities.

Every row gets a short prefixed ID such as ``conv-1a2b3c4d``.
"""

import hashlib
from uuid import uuid4


def generate_entity_id(prefix: str) -> str:
    """
    Generate a unique ID for any entity.

    Args:
        prefix: Entity type prefix (e.g., "usr", "conv", "msg")

    Returns:
        ID like "conv-a1b2c3d4"

    Examples:
        >>> id = generate_entity_id("msg")
        >>> id.startswith("msg-")
        True
        >>> len(id)
        12
    """
    unique_bytes = uuid4().bytes
    hash_digest = hashlib.sha256(unique_bytes).hexdigest()[:8]
    return f"{prefix}-{hash_digest}"


# Common entity prefixes
PREFIX_USER = "usr"
PREFIX_PROGRESS = "prog"
PREFIX_CONVERSATION = "conv"
PREFIX_MESSAGE = "msg"
PREFIX_CONFIRMATION = "cfm"
