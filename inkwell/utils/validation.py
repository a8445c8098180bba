# inkwell/utils/validation.py
import re

EMAIL_PATTERN = re.compile(
    r"^[a-zA-Z0-9.!#$%&'*+/=?^_`{|}~-]+@[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?"
    r"(?:\.[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?)*$"
)

def validate_email(email: str) -> bool:
    """Validate email format, length between 3 and 255 characters"""
    if not email or len(email) < 3 or len(email) > 255:
        return False

    if not EMAIL_PATTERN.match(email):
        return False

    local, domain = email.rsplit("@", 1)
    if len(local) > 64 or len(domain) > 253:
        return False

    return True

def normalize_email(email: str) -> str:
    return email.strip().lower()
