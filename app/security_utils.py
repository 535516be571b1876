"""
Security Utilities
Token generation, constant-time comparison, client identification and
HTML/CSS sanitization for user-supplied white-label content
"""

import logging
import re
import secrets
from typing import Optional

import bleach
from bleach.css_sanitizer import CSSSanitizer
from fastapi import Request

logger = logging.getLogger(__name__)


# ============================================================================
# TOKEN GENERATION
# ============================================================================


def generate_secure_token(length: int = 32) -> str:
    """Generate a cryptographically secure random token"""
    return secrets.token_urlsafe(length)


def constant_time_compare(a: Optional[str], b: Optional[str]) -> bool:
    """
    Compare two strings in constant time to prevent timing attacks

    Returns:
        True if strings are equal, False otherwise (None never matches)
    """
    if a is None or b is None:
        return False
    return secrets.compare_digest(a.encode(), b.encode())


# ============================================================================
# INPUT SANITIZATION
# ============================================================================

WHITE_LABEL_TAGS = [
    "p",
    "br",
    "div",
    "span",
    "strong",
    "em",
    "u",
    "a",
    "img",
    "ul",
    "ol",
    "li",
    "h1",
    "h2",
    "h3",
    "h4",
    "nav",
    "header",
    "footer",
    "small",
]

WHITE_LABEL_ATTRIBUTES = {
    "a": ["href", "title", "target", "rel"],
    "img": ["src", "alt", "width", "height"],
    "*": ["class", "style"],
}

WHITE_LABEL_CSS_PROPERTIES = [
    "color",
    "background-color",
    "font-weight",
    "font-size",
    "text-align",
    "margin",
    "padding",
]


def sanitize_html(html_content: Optional[str], allowed_tags: Optional[list] = None) -> Optional[str]:
    """
    Sanitize HTML content to prevent XSS attacks

    Args:
        html_content: Raw HTML content
        allowed_tags: List of allowed HTML tags (default: white-label subset)

    Returns:
        Sanitized HTML
    """
    if html_content is None:
        return None

    css_sanitizer = CSSSanitizer(allowed_css_properties=WHITE_LABEL_CSS_PROPERTIES)

    return bleach.clean(
        html_content,
        tags=allowed_tags or WHITE_LABEL_TAGS,
        attributes=WHITE_LABEL_ATTRIBUTES,
        protocols=["http", "https", "mailto"],
        css_sanitizer=css_sanitizer,
        strip=True,
    )


# Constructs that let a stylesheet run script or pull remote content
_DANGEROUS_CSS = re.compile(
    r"(expression\s*\(|javascript\s*:|vbscript\s*:|@import|behavior\s*:|-moz-binding|</?\s*style)",
    re.IGNORECASE,
)


def sanitize_css(css: Optional[str]) -> Optional[str]:
    """Strip markup and script-capable constructs from a custom stylesheet"""
    if css is None:
        return None
    # Drop any HTML that was pasted alongside the CSS
    text = bleach.clean(css, tags=[], strip=True)
    cleaned = _DANGEROUS_CSS.sub("", text)
    if cleaned != text:
        logger.warning("⚠️ Removed unsafe constructs from custom CSS")
    # bleach escapes these; CSS child selectors need them back
    return cleaned.replace("&gt;", ">").replace("&amp;", "&")


# ============================================================================
# REQUEST HELPERS
# ============================================================================


def get_client_ip(request: Request) -> str:
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip.strip()
    return request.client.host if request.client else "unknown"


def get_user_agent(request: Request) -> Optional[str]:
    user_agent = request.headers.get("User-Agent")
    return user_agent[:500] if user_agent else None
