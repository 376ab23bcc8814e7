"""
Password Policy Validation

Requirements:
- Minimum 8 characters
- Maximum 72 characters (bcrypt limit)
- At least 1 uppercase letter
- At least 1 lowercase letter
- At least 1 digit
- Not in common password blocklist
"""
import re
from typing import Tuple, List

MIN_LENGTH = 8
MAX_LENGTH = 72

# Common weak passwords to block (compared case-insensitively)
COMMON_PASSWORDS = {
    "password", "password1", "password123", "123456", "12345678", "1234567890",
    "qwerty", "qwerty123", "abc123", "letmein", "welcome", "welcome1", "monkey",
    "dragon", "master", "login", "admin", "admin123", "root", "toor", "pass",
    "test", "guest", "iloveyou", "princess", "sunshine", "football", "baseball",
    "passw0rd", "p@ssw0rd", "p@ssword", "trustno1", "starwars", "whatever",
    "shadow", "superman", "batman", "summer", "winter", "spring", "autumn",
    "runly", "runly123", "running", "running1", "runner", "runner123",
    "marathon", "marathon1", "lozinka", "lozinka123",
}


def validate_password(password: str) -> Tuple[bool, List[str]]:
    """
    Validate password against security policy.

    Args:
        password: The password to validate

    Returns:
        Tuple of (is_valid, list_of_error_messages)
    """
    errors = []

    if len(password) < MIN_LENGTH:
        errors.append(f"Password must be at least {MIN_LENGTH} characters")

    if len(password.encode("utf-8")) > MAX_LENGTH:
        errors.append(f"Password must not exceed {MAX_LENGTH} bytes (bcrypt limit)")

    if not re.search(r'[A-Z]', password):
        errors.append("Password must contain at least one uppercase letter")

    if not re.search(r'[a-z]', password):
        errors.append("Password must contain at least one lowercase letter")

    if not re.search(r'\d', password):
        errors.append("Password must contain at least one digit")

    if password.lower() in COMMON_PASSWORDS:
        errors.append("Password is too common, please choose a stronger password")

    return len(errors) == 0, errors
