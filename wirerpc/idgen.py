"""Request identifier generation"""

import uuid


def generate_id() -> str:
    """Return a fresh random request id"""
    return str(uuid.uuid4())
