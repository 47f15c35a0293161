"""
Text sanitization for strings from untrusted sources.

On-chain ``symbol()``/``name()`` results and explorer JSON can carry null
padding and control bytes. Only printable ASCII (0x20-0x7E) survives.
"""

import re
from typing import Any, Optional


_NON_PRINTABLE = re.compile(r"[^\x20-\x7E]")


def sanitize_text(text: Any) -> Optional[str]:
    """
    Strip non-printable characters and surrounding whitespace.

    Returns None (never "") when nothing printable remains.
    """
    if text is None:
        return None
    if isinstance(text, (bytes, bytearray)):
        text = bytes(text).decode("utf-8", errors="ignore")
    cleaned = _NON_PRINTABLE.sub("", str(text).replace("\x00", "")).strip()
    return cleaned or None
