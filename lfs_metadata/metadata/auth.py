"""
Credential hashing and request authentication

Passwords are never stored raw. Each user value is a salted
PBKDF2-SHA256 digest in the form

    pbkdf2_sha256$<iterations>$<salt hex>$<digest hex>
"""
import base64
import binascii
import hashlib
import hmac
import os
from typing import Callable, Optional, Tuple

ALGORITHM = "pbkdf2_sha256"
DEFAULT_ITERATIONS = 260000
SALT_BYTES = 16

Authenticator = Callable[[str], bool]


def hash_password(password: str, iterations: int = DEFAULT_ITERATIONS) -> bytes:
    """Return the salted digest stored for `password`"""
    if iterations < 1:
        raise ValueError("iterations must be positive")
    salt = os.urandom(SALT_BYTES)
    digest = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, iterations)
    return f"{ALGORITHM}${iterations}${salt.hex()}${digest.hex()}".encode("ascii")


def check_password(password: str, stored: bytes) -> bool:
    """Compare `password` against a stored digest in constant time"""
    try:
        algorithm, iterations, salt_hex, digest_hex = stored.decode("ascii").split("$")
        if algorithm != ALGORITHM:
            return False
        salt = bytes.fromhex(salt_hex)
        expected = bytes.fromhex(digest_hex)
        rounds = int(iterations)
    except (UnicodeDecodeError, ValueError):
        return False
    if rounds < 1:
        return False

    actual = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, rounds)
    return hmac.compare_digest(actual, expected)


def parse_basic_auth(authorization: str) -> Optional[Tuple[str, str]]:
    """Split a `Basic base64(user:pass)` header into its user and password"""
    if not authorization:
        return None
    scheme, _, encoded = authorization.strip().partition(" ")
    if scheme.lower() != "basic" or not encoded:
        return None
    try:
        decoded = base64.b64decode(encoded.strip(), validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError):
        return None
    user, sep, password = decoded.partition(":")
    if not sep or not user:
        return None
    return user, password


def basic_auth_header(user: str, password: str) -> str:
    """Build the Authorization value accepted by BasicAuthenticator"""
    token = base64.b64encode(f"{user}:{password}".encode("utf-8")).decode("ascii")
    return f"Basic {token}"


class BasicAuthenticator:
    """Accept Basic credentials that `verify(user, password)` approves"""

    def __init__(self, verify: Callable[[str, str], bool]):
        self._verify = verify

    def __call__(self, authorization: str) -> bool:
        creds = parse_basic_auth(authorization)
        if creds is None:
            return False
        return self._verify(*creds) is True


def allow_all(authorization: str) -> bool:
    return True


def deny_all(authorization: str) -> bool:
    return False
