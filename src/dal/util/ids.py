import re
import secrets
import string

ID_ALPHABET = string.ascii_letters + string.digits


def generate_secure_id(length: int = 16) -> str:
    """Return a random alphanumeric token drawn from a CSPRNG."""
    if length <= 0:
        raise ValueError("length must be positive")
    return "".join(secrets.choice(ID_ALPHABET) for _ in range(length))


def is_valid_id(value: object, length: int = 16) -> bool:
    """Return True when ``value`` is an alphanumeric token of exactly ``length`` chars."""
    if not isinstance(value, str) or len(value) != length:
        return False
    return re.fullmatch(r"[A-Za-z0-9]+", value) is not None
