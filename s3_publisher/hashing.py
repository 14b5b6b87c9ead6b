"""Module containing the hashing helpers used for request signing."""
import base64
import hashlib
import hmac
from typing import Iterable, Union

BytesLike = Union[str, bytes]


def _to_bytes(value: BytesLike) -> bytes:
    if isinstance(value, str):
        return value.encode('utf-8')
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value)
    raise TypeError(f"Expected str or bytes, got {type(value).__name__}")


def sha256_hex(data: BytesLike) -> str:
    """Return the lowercase hex SHA-256 digest of data.

    :param data: str or bytes, content to hash. Strings are UTF-8 encoded.
    :return: str, 64 lowercase hex characters.
    """
    return to_hex(hashlib.sha256(_to_bytes(data)).digest())


def hmac_sha256(key: BytesLike, message: BytesLike) -> bytes:
    """Return the raw HMAC-SHA256 of message keyed with key.

    :param key: str or bytes, signing key.
    :param message: str or bytes, message to sign.
    :return: bytes, 32 byte digest.
    """
    return hmac.new(_to_bytes(key), _to_bytes(message), hashlib.sha256).digest()


def to_hex(values: Iterable[int]) -> str:
    """Encode byte values as lowercase hex.

    Values are masked to 0-255, so signed bytes such as -1 encode as ``ff``.
    Every byte produces exactly two digits.
    """
    return ''.join(f'{value & 0xFF:02x}' for value in values)


def to_base64(data: BytesLike) -> str:
    return base64.b64encode(_to_bytes(data)).decode('ascii')
