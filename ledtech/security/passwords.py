"""
Password policy: strength rules and secure password generation
"""

import secrets
import string
from dataclasses import dataclass, field
from typing import List

from ledtech.security.errors import ValidationError

MIN_LENGTH = 8

UPPERCASE = string.ascii_uppercase
LOWERCASE = string.ascii_lowercase
DIGITS = string.digits
SYMBOLS = '!@#$%^&*(),.?":{}|<>'

TOO_SHORT = f"Password must be at least {MIN_LENGTH} characters long"
NO_UPPERCASE = "Password must contain at least one uppercase letter"
NO_LOWERCASE = "Password must contain at least one lowercase letter"
NO_DIGIT = "Password must contain at least one number"
NO_SYMBOL = "Password must contain at least one special character"


@dataclass
class PasswordStrength:
    is_valid: bool
    errors: List[str] = field(default_factory=list)


def validate_password_strength(password: str) -> PasswordStrength:
    """
    Check a password against every rule of the policy.

    Each rule is evaluated independently, so a password that breaks several
    rules reports all of them.
    """
    errors: List[str] = []

    if len(password) < MIN_LENGTH:
        errors.append(TOO_SHORT)
    if not any(c in UPPERCASE for c in password):
        errors.append(NO_UPPERCASE)
    if not any(c in LOWERCASE for c in password):
        errors.append(NO_LOWERCASE)
    if not any(c in DIGITS for c in password):
        errors.append(NO_DIGIT)
    if not any(c in SYMBOLS for c in password):
        errors.append(NO_SYMBOL)

    return PasswordStrength(is_valid=not errors, errors=errors)


def ensure_password_strength(password: str) -> None:
    """Raise ValidationError listing every rule the password breaks"""
    result = validate_password_strength(password)
    if not result.is_valid:
        raise ValidationError(
            "Password does not meet security requirements", errors=result.errors
        )


def generate_secure_password(length: int = 12) -> str:
    """Generate a random password that always satisfies the policy"""
    if length < MIN_LENGTH:
        raise ValueError(f"Password length must be at least {MIN_LENGTH}")

    alphabet = UPPERCASE + LOWERCASE + DIGITS + SYMBOLS
    chars = [
        secrets.choice(UPPERCASE),
        secrets.choice(LOWERCASE),
        secrets.choice(DIGITS),
        secrets.choice(SYMBOLS),
    ]
    chars.extend(secrets.choice(alphabet) for _ in range(length - len(chars)))

    secrets.SystemRandom().shuffle(chars)
    return "".join(chars)
