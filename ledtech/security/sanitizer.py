"""
Input sanitization and format validation.

These helpers are a defense-in-depth layer. They never raise: sanitizers
return an empty string and validators return False for non-string input.
Database access must still use parameterized queries.
"""

import re
from urllib.parse import urlparse

from email_validator import EmailNotValidError, validate_email as _check_email

MAX_EMAIL_LENGTH = 254
MAX_FILE_NAME_LENGTH = 255

_HTML_ESCAPES = {
    "&": "&amp;",
    "<": "&lt;",
    ">": "&gt;",
    '"': "&quot;",
    "'": "&#039;",
    "/": "&#x2F;",
}
_HTML_PATTERN = re.compile(r"[&<>\"'/]")

_SQL_PATTERNS = [
    re.compile(r"['\";\\]"),  # quotes, statement separator, backslash
    re.compile(r"--"),
    re.compile(r"/\*"),
    re.compile(r"\*/"),
    re.compile(r"\b(?:UNION|SELECT|INSERT|UPDATE|DELETE|DROP)\b", re.IGNORECASE),
]

_XSS_PATTERNS = [
    re.compile(r"<script\b[^<]*(?:(?!</script>)<[^<]*)*</script>", re.IGNORECASE),
    re.compile(r"<iframe\b[^<]*(?:(?!</iframe>)<[^<]*)*</iframe>", re.IGNORECASE),
    re.compile(r"javascript:", re.IGNORECASE),
    re.compile(r"on\w+\s*=", re.IGNORECASE),
    re.compile(r"style\s*=", re.IGNORECASE),
]

_DANGEROUS_FILE_CHARS = re.compile(r'[<>:"|?*\x00-\x1f]')


def escape_html(text: str) -> str:
    """Entity-escape HTML-significant characters"""
    if not isinstance(text, str):
        return ""
    return _HTML_PATTERN.sub(lambda m: _HTML_ESCAPES[m.group(0)], text)


def sanitize_sql_input(text: str) -> str:
    """Strip quotes, comments, separators and common injection keywords"""
    if not isinstance(text, str):
        return ""
    for pattern in _SQL_PATTERNS:
        text = pattern.sub("", text)
    return text


def sanitize_user_input(text: str) -> str:
    """Strip script/iframe elements, event handlers, javascript: URIs and inline styles"""
    if not isinstance(text, str):
        return ""
    # Removing one match can splice a new one together, so repeat until stable
    previous = None
    while previous != text:
        previous = text
        for pattern in _XSS_PATTERNS:
            text = pattern.sub("", text)
    return text.strip()


def validate_email(email: str) -> bool:
    if not isinstance(email, str) or len(email) > MAX_EMAIL_LENGTH:
        return False
    try:
        _check_email(email, check_deliverability=False)
    except EmailNotValidError:
        return False
    return True


def validate_url(url: str) -> bool:
    """Accept only absolute http(s) URLs with a host"""
    if not isinstance(url, str):
        return False
    try:
        parsed = urlparse(url.strip())
        return parsed.scheme in ("http", "https") and bool(parsed.hostname)
    except ValueError:
        return False


def validate_file_name(file_name: str) -> bool:
    """Reject empty or overlong names, path traversal and unsafe characters"""
    if not isinstance(file_name, str):
        return False
    return (
        0 < len(file_name) <= MAX_FILE_NAME_LENGTH
        and ".." not in file_name
        and not _DANGEROUS_FILE_CHARS.search(file_name)
    )
