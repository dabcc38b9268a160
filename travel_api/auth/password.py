"""Password hashing with bcrypt."""

import bcrypt

# bcrypt only reads the first 72 bytes and newer releases refuse anything longer
MAX_PASSWORD_BYTES = 72


def check_password_length(password: str, min_length: int = 6) -> str:
    """Validate a new password before it reaches bcrypt."""
    if len(password) < min_length:
        raise ValueError(f"Password must be at least {min_length} characters")
    if len(password.encode()) > MAX_PASSWORD_BYTES:
        raise ValueError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes")
    return password


def hash_password(password: str) -> str:
    """Hash a password with a fresh salt."""
    return bcrypt.hashpw(password.encode(), bcrypt.gensalt()).decode()


def verify_password(password: str, password_hash: str | None) -> bool:
    """Check ``password`` against a stored bcrypt hash."""
    if not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode(), password_hash.encode())
    except ValueError:
        # Not a bcrypt hash, or a password bcrypt refuses
        return False
