"""Random identifiers for labelling emitters."""

import uuid


def uid() -> str:
    """Return a fresh id: an ``e`` followed by 32 lowercase hex digits.

    The leading letter keeps the id usable where a name may not start with a digit.
    """
    return "e" + uuid.uuid4().hex
