"""
Helpers for the inline document representation.

Uploaded files are never written to a blob store; they travel and are kept
as ``data:<mimetype>;base64,<payload>`` URIs.
"""

import base64
import binascii
import re
from typing import Tuple

DATA_URI_PATTERN = re.compile(r"^data:(?P<mime>[\w.+-]+/[\w.+-]+);base64,(?P<payload>.*)$", re.DOTALL)


def encode_data_uri(content: bytes, mime_type: str) -> str:
    """Encode raw bytes as a base64 data URI."""
    payload = base64.b64encode(content).decode("ascii")
    return f"data:{mime_type};base64,{payload}"


def decode_data_uri(data_uri: str) -> Tuple[str, bytes]:
    """
    Split a data URI into its MIME type and decoded bytes.

    Raises:
        ValueError: If the value is not a base64 data URI
    """
    match = DATA_URI_PATTERN.match(data_uri)
    if not match:
        raise ValueError("Expected a data URI of the form data:<mimetype>;base64,<payload>")
    try:
        content = base64.b64decode(match.group("payload"), validate=True)
    except binascii.Error as e:
        raise ValueError(f"Invalid base64 payload: {e}") from e
    return match.group("mime"), content
