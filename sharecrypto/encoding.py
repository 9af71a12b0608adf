import base64
import binascii


def b64(data: bytes) -> str:
    """Encode bytes to a base64 string for JSON transport."""
    return base64.b64encode(data).decode("ascii")


def b64d(text: str) -> bytes:
    """Decode a base64 string. Raises ValueError on malformed input."""
    try:
        return base64.b64decode(text, validate=True)
    except (binascii.Error, ValueError, TypeError) as e:
        raise ValueError(f"invalid base64: {e}") from e
