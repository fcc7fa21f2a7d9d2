import os

import bcrypt

BCRYPT_ROUNDS = int(os.getenv("COMMERCEHUB_BCRYPT_ROUNDS", "12"))


def hash_password(password: str) -> str:
    """Return a bcrypt hash of ``password`` as text."""
    salt = bcrypt.gensalt(rounds=BCRYPT_ROUNDS)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(password: str, pwd_hash: str) -> bool:
    """True if ``password`` matches the stored hash."""
    if not pwd_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode("utf-8"), pwd_hash.encode("utf-8"))
    except ValueError:
        # malformed hash in the store
        return False
