"""
Identifier codec for storage keys.

Every stored file lives on disk under a name of the form
``<identifier>-<original filename>``. The identifier is a canonical
8-4-4-4-12 hex token, so the separator is always the hyphen right after
the 36th character; the original filename may contain hyphens of its own.
"""

import re
from dataclasses import dataclass
from typing import Optional

IDENTIFIER_PATTERN = r"[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}"

_IDENTIFIER_RE = re.compile(IDENTIFIER_PATTERN, re.IGNORECASE)
_STORAGE_KEY_RE = re.compile(
    rf"(?P<identifier>{IDENTIFIER_PATTERN})-(?P<filename>.+)",
    re.IGNORECASE | re.DOTALL,
)


@dataclass(frozen=True)
class DecodedKey:
    """The parts of a storage key."""
    identifier: str
    filename: str


def encode(identifier: str, original_filename: str) -> str:
    """
    Build the storage key for an identifier and an original filename.

    No escaping is applied: a filename that itself starts with an
    identifier-shaped token still decodes back to the outer identifier.
    """
    return f"{identifier}-{original_filename}"


def decode(entry_name: str) -> Optional[DecodedKey]:
    """
    Split a directory entry name into identifier and original filename.

    Args:
        entry_name: Raw directory entry name

    Returns:
        DecodedKey, or None when the name is not shaped like a storage key
    """
    if not isinstance(entry_name, str):
        return None

    match = _STORAGE_KEY_RE.fullmatch(entry_name)
    if match is None:
        return None

    return DecodedKey(
        identifier=match.group("identifier").lower(),
        filename=match.group("filename").strip(),
    )


def is_identifier(value: str) -> bool:
    """Whether `value` is a canonical identifier."""
    return isinstance(value, str) and _IDENTIFIER_RE.fullmatch(value) is not None
