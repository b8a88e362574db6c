# app/utils/token_parser.py
"""
Helpers for pulling a pass token out of whatever a QR code contained.

Accepted payloads, checked in this order:
  1. bare token          "3f2b...-..."
  2. verification URL    "https://host/base/verify-visitor/3f2b..."  (full or partial)
  3. legacy text pass    "... Pass ID: 3f2b... ..."
"""

import re
from typing import Optional

TOKEN_PATTERN = r"[0-9a-f\-]{36}"
VERIFY_SEGMENT = "verify-visitor"

_BARE_RE = re.compile(rf"^{TOKEN_PATTERN}$", re.IGNORECASE)
_URL_RE = re.compile(rf"/{VERIFY_SEGMENT}/({TOKEN_PATTERN})(?![0-9a-f\-])", re.IGNORECASE)
_LEGACY_RE = re.compile(rf"Pass ID:\s*({TOKEN_PATTERN})(?![0-9a-f\-])", re.IGNORECASE)


def extract_token(payload: Optional[str]) -> Optional[str]:
    """Return the lower-cased token, or None if the payload has no recognisable token."""
    if not payload:
        return None
    text = payload.strip()

    if _BARE_RE.match(text):
        return text.lower()

    match = _URL_RE.search(text)
    if match:
        return match.group(1).lower()

    match = _LEGACY_RE.search(text)
    if match:
        return match.group(1).lower()

    return None


def is_token_shaped(value: str) -> bool:
    return bool(value) and bool(_BARE_RE.match(value.strip()))
