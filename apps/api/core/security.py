"""
Password hashing.

bcrypt generates a fresh salt per hash and `checkpw` compares in constant
time. bcrypt only looks at the first 72 bytes of input, which is why the
password policy caps length at 72.
"""
import bcrypt


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against a hash. Malformed hashes never verify."""
    try:
        return bcrypt.checkpw(
            plain_password.encode('utf-8'),
            hashed_password.encode('utf-8')
        )
    except ValueError:
        return False


def get_password_hash(password: str) -> str:
    """Hash a password."""
    salt = bcrypt.gensalt()
    return bcrypt.hashpw(password.encode('utf-8'), salt).decode('utf-8')


# Compared against on unknown emails so login timing does not reveal
# whether an account exists.
DUMMY_PASSWORD_HASH = get_password_hash("runly-timing-equalizer")
