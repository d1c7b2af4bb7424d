"""
Input validation for prompts, uploads and account credentials.

Validators never raise for bad input; they return a ValidationResult so
callers can surface the message verbatim.
"""

import re
from typing import Optional

from jewelshot.config import settings
from jewelshot.schemas import ValidationResult

MIN_PROMPT_LENGTH = 3
MAX_PROMPT_LENGTH = 2000
MAX_NEGATIVE_PROMPT_LENGTH = 1000
MAX_EMAIL_LENGTH = 254
MIN_PASSWORD_LENGTH = 8
MAX_PASSWORD_LENGTH = 128

# Spam heuristic: long prompts made of few distinct words
REPETITION_MIN_WORDS = 20
REPETITION_MIN_UNIQUE_RATIO = 0.3

ALLOWED_IMAGE_TYPES = ("image/jpeg", "image/jpg", "image/png", "image/webp")

MIME_EXTENSIONS = {
    "image/jpeg": ("jpg", "jpeg"),
    "image/jpg": ("jpg", "jpeg"),
    "image/png": ("png",),
    "image/webp": ("webp",),
}

_INJECTION_PATTERNS = [
    re.compile(r"(<script|javascript:|onerror=|onload=)", re.IGNORECASE),  # XSS
    re.compile(r"(eval\(|exec\(|system\()", re.IGNORECASE),  # code execution
    re.compile(r"(\bDROP\b|\bDELETE\b|\bTRUNCATE\b)", re.IGNORECASE),  # destructive SQL
]
_PATH_TRAVERSAL = re.compile(r"(\.\./|\.\.\\)")

PROMPT_BLOCKLIST = _INJECTION_PATTERNS + [_PATH_TRAVERSAL]
NEGATIVE_PROMPT_BLOCKLIST = list(_INJECTION_PATTERNS)

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def _ok() -> ValidationResult:
    return ValidationResult(valid=True)


def _fail(error: str) -> ValidationResult:
    return ValidationResult(valid=False, error=error)


def validate_prompt(prompt: Optional[str]) -> ValidationResult:
    """Validate a generation prompt for length, injected code and spam."""
    if not prompt or not isinstance(prompt, str):
        return _fail("Prompt is required")

    trimmed = prompt.strip()

    if len(trimmed) < MIN_PROMPT_LENGTH:
        return _fail(f"Prompt must be at least {MIN_PROMPT_LENGTH} characters")

    if len(trimmed) > MAX_PROMPT_LENGTH:
        return _fail(f"Prompt too long. Maximum {MAX_PROMPT_LENGTH} characters allowed")

    for pattern in PROMPT_BLOCKLIST:
        if pattern.search(trimmed):
            return _fail("Invalid content detected. Please remove special characters or code.")

    words = trimmed.split()
    if len(words) > REPETITION_MIN_WORDS:
        ratio = len(set(words)) / len(words)
        if ratio < REPETITION_MIN_UNIQUE_RATIO:
            return _fail("Prompt contains too much repetition. Please provide varied description.")

    return _ok()


def validate_negative_prompt(prompt: Optional[str]) -> ValidationResult:
    """Negative prompts are optional; same blocklist, shorter ceiling, no spam check."""
    if not prompt:
        return _ok()

    if len(prompt) > MAX_NEGATIVE_PROMPT_LENGTH:
        return _fail(
            f"Negative prompt too long. Maximum {MAX_NEGATIVE_PROMPT_LENGTH} characters allowed"
        )

    for pattern in NEGATIVE_PROMPT_BLOCKLIST:
        if pattern.search(prompt):
            return _fail("Invalid content detected in negative prompt.")

    return _ok()


def sanitize_prompt(prompt: str) -> str:
    """Strip markup and handler fragments, then clamp to the maximum length."""
    cleaned = prompt.strip()
    cleaned = re.sub(r"[<>]", "", cleaned)
    cleaned = re.sub(r"javascript:", "", cleaned, flags=re.IGNORECASE)
    cleaned = re.sub(r"on\w+=", "", cleaned, flags=re.IGNORECASE)
    return cleaned[:MAX_PROMPT_LENGTH]


def file_extension(file_name: str) -> str:
    """Lower-cased extension without the dot ('' if none)."""
    if "." not in file_name:
        return ""
    return file_name.rsplit(".", 1)[-1].lower()


def validate_file_upload(
    file_name: Optional[str],
    content_type: Optional[str],
    size: int,
) -> ValidationResult:
    """Validate an uploaded image by size, MIME type and extension."""
    if not file_name:
        return _fail("No file provided")

    max_size = settings.max_upload_bytes
    if size > max_size:
        size_mb = size / 1024 / 1024
        return _fail(
            f"File too large ({size_mb:.2f}MB). Maximum size is {max_size // (1024 * 1024)}MB"
        )

    if content_type not in ALLOWED_IMAGE_TYPES:
        return _fail(
            f"Invalid file type: {content_type}. Only JPEG, PNG, and WebP are allowed"
        )

    ext = file_extension(file_name)
    if not ext or ext not in MIME_EXTENSIONS[content_type]:
        return _fail("File extension does not match file type")

    return _ok()


def validate_email(email: Optional[str]) -> ValidationResult:
    if not email or not isinstance(email, str):
        return _fail("Email is required")

    if not EMAIL_RE.fullmatch(email):
        return _fail("Invalid email format")

    if len(email) > MAX_EMAIL_LENGTH:
        return _fail("Email too long")

    return _ok()


def _check_password_length(password: Optional[str]) -> Optional[ValidationResult]:
    if not password or not isinstance(password, str):
        return _fail("Password is required")
    if len(password) < MIN_PASSWORD_LENGTH:
        return _fail(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
    if len(password) > MAX_PASSWORD_LENGTH:
        return _fail(f"Password too long (max {MAX_PASSWORD_LENGTH} characters)")
    return None


def validate_password(password: Optional[str]) -> ValidationResult:
    """At least one letter and one digit; used for password changes."""
    failure = _check_password_length(password)
    if failure:
        return failure

    if not re.search(r"[a-zA-Z]", password) or not re.search(r"[0-9]", password):
        return _fail("Password must contain at least one letter and one number")

    return _ok()


def validate_signup_password(password: Optional[str]) -> ValidationResult:
    """Stricter signup rule: upper case, lower case and a digit."""
    failure = _check_password_length(password)
    if failure:
        return failure

    if not re.search(r"[A-Z]", password):
        return _fail("Password must contain at least one uppercase letter")
    if not re.search(r"[a-z]", password):
        return _fail("Password must contain at least one lowercase letter")
    if not re.search(r"[0-9]", password):
        return _fail("Password must contain at least one number")

    return _ok()
