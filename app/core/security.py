"""
Password generation utilities.

Authentication secrets are managed by Supabase Auth; this module only
creates the credentials handed out with TV slots and new user accounts.
"""
import secrets
import string

SPECIAL_CHARACTERS = "!@#$%&*?"


def generate_numeric_password(length: int = 4) -> str:
    """
    Generate a random numeric password (TV slot PIN).

    Args:
        length (int): Number of digits. Defaults to 4.

    Returns:
        str: Digits only, zero-padded (e.g. '0427')

    Example:
        >>> len(generate_numeric_password())
        4
    """
    return "".join(secrets.choice(string.digits) for _ in range(length))


def generate_secure_password(length: int = 10) -> str:
    """
    Generate a password with at least one uppercase letter, one lowercase letter,
    one digit and one special character.

    Args:
        length (int): Total password length (minimum 6)

    Returns:
        str: Random password

    Raises:
        ValueError: If length is lower than 6
    """
    if length < 6:
        raise ValueError("Password length must be at least 6 characters")

    alphabet = string.ascii_letters + string.digits + SPECIAL_CHARACTERS

    # One character from each required class, the rest from the full alphabet
    chars = [
        secrets.choice(string.ascii_uppercase),
        secrets.choice(string.ascii_lowercase),
        secrets.choice(string.digits),
        secrets.choice(SPECIAL_CHARACTERS),
    ]
    chars.extend(secrets.choice(alphabet) for _ in range(length - len(chars)))

    # Shuffle so the required classes are not always at the start
    secrets.SystemRandom().shuffle(chars)
    return "".join(chars)
