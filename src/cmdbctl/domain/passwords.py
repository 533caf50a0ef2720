"""Password strength rules for account registration."""

from __future__ import annotations

SPECIAL_CHARACTERS = "!@#$%^&*()_+-=[]{}|;:,.<>?"


def password_problems(password: str, *, min_length: int = 8) -> list[str]:
    """Return every rule *password* breaks (empty when it is strong enough)."""
    problems: list[str] = []
    if len(password) < min_length:
        problems.append(f"Password must be at least {min_length} characters long")
    if not any(c.islower() for c in password):
        problems.append("Password must contain at least one lowercase letter")
    if not any(c.isupper() for c in password):
        problems.append("Password must contain at least one uppercase letter")
    if not any(c.isascii() and c.isdigit() for c in password):
        problems.append("Password must contain at least one digit")
    if not any(c in SPECIAL_CHARACTERS for c in password):
        problems.append("Password must contain at least one special character")
    return problems
