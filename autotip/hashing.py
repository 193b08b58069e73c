"""Server hashes for joining a session with the account provider.

The session server expects Java's ``BigInteger(sha1).toString(16)``: the raw
digest read as a signed two's-complement number, printed in hex without
leading zeros and with a minus sign for negative values.
"""

import hashlib
import random

# upper bound of the salt, same range the official client draws from
SALT_MAX = 13611295 * 10 ** 32
SALT_DIGITS = "0123456789abcdefghijklmnopqrstuv"


def remove_dashes(uuid):
    """The account APIs want UUIDs without dashes."""
    return uuid.replace("-", "")


def digest(value):
    if not isinstance(value, str):
        raise TypeError(f"digest() expects str, got {type(value).__name__}")
    raw = hashlib.sha1(value.encode("utf-8")).digest()
    # signed=True performs the two's complement when the top bit is set
    number = int.from_bytes(raw, "big", signed=True)
    return format(number, "x")


def to_base32(number):
    if number == 0:
        return "0"
    out = []
    while number:
        number, rem = divmod(number, 32)
        out.append(SALT_DIGITS[rem])
    return "".join(reversed(out))


def salt(rng=random):
    return to_base32(rng.randint(0, SALT_MAX))


def server_hash(uuid, rng=random):
    """Hash of the dashless uuid plus a fresh salt, one per login attempt."""
    return digest(remove_dashes(uuid) + salt(rng))
