"""
HTML sanitization module for the content normalization engine.
Wraps bleach behind a policy object and derives plain text and counts from sanitized HTML.
"""
import html
import logging
import re
from dataclasses import dataclass
from typing import List

import bleach


logger = logging.getLogger(__name__)


BASE_TAGS = [
    # Text formatting
    'p', 'br', 'span', 'div',
    'strong', 'b', 'em', 'i', 'u', 's', 'strike',
    'h1', 'h2', 'h3', 'h4', 'h5', 'h6',
    # Lists
    'ul', 'ol', 'li',
    # Quotes and code
    'blockquote', 'pre', 'code',
]
LINK_TAGS = ['a']
IMAGE_TAGS = ['img']
VIDEO_TAGS = ['video', 'iframe']
TABLE_TAGS = ['table', 'thead', 'tbody', 'tr', 'td', 'th']

BASE_ATTRIBUTES = ['class', 'id', 'title']
LINK_ATTRIBUTES = ['href', 'target', 'rel']
MEDIA_ATTRIBUTES = ['src', 'alt', 'width', 'height']

ALLOWED_PROTOCOLS = ['http', 'https', 'mailto']

# Elements removed together with their contents before cleaning
DANGEROUS_BLOCKS = ['script', 'style', 'noscript', 'template']

# Inside a tag, quoted or not
EVENT_HANDLER_PATTERN = re.compile(
    r'\s*\bon[a-z]{3,}\s*=\s*(?:"[^"]*"|\'[^\']*\'|&quot;.*?&quot;|[^\s>]*)',
    re.IGNORECASE
)
# In running text only quoted values read as a handler
QUOTED_EVENT_HANDLER_PATTERN = re.compile(
    r'\s*\bon[a-z]{3,}\s*=\s*(?:"[^"]*"|\'[^\']*\'|&quot;.*?&quot;)',
    re.IGNORECASE
)
# A real or entity-escaped tag: opener, body, closer
TAG_CONTEXT_PATTERN = re.compile(r'(<|&lt;)(/?[a-z](?:[^<>&]|&(?!lt;))*?)(>|&gt;)', re.IGNORECASE)
JAVASCRIPT_SCHEME_PATTERN = re.compile(r'javascript\s*:', re.IGNORECASE)

WRAPPER_PATTERNS = [
    re.compile(r'<!DOCTYPE[^>]*>', re.IGNORECASE),
    re.compile(r'</?(?:html|head|body)\b[^>]*>', re.IGNORECASE),
]
STYLE_BLOCK_PATTERN = re.compile(r'<style[^>]*>[\s\S]*?</style>', re.IGNORECASE)
SCRIPT_BLOCK_PATTERN = re.compile(r'<script[^>]*>[\s\S]*?</script>', re.IGNORECASE)
TAG_PATTERN = re.compile(r'<[^>]+>')


def _block_pattern(tag: str) -> re.Pattern:
    return re.compile(rf'<{tag}\b[^>]*>[\s\S]*?</{tag}\s*>', re.IGNORECASE)


@dataclass(frozen=True)
class SanitizerPolicy:
    """
    Which optional content classes survive sanitization.

    Attributes:
        allow_images: Keep <img> elements
        allow_videos: Keep <video>/<iframe> elements
        allow_links: Keep <a> elements and their href
        allow_tables: Keep table markup
    """
    allow_images: bool = False
    allow_videos: bool = False
    allow_links: bool = True
    allow_tables: bool = False

    def allowed_tags(self) -> List[str]:
        tags = list(BASE_TAGS)
        if self.allow_links:
            tags += LINK_TAGS
        if self.allow_images:
            tags += IMAGE_TAGS
        if self.allow_videos:
            tags += VIDEO_TAGS
        if self.allow_tables:
            tags += TABLE_TAGS
        return tags

    def allowed_attributes(self) -> List[str]:
        attributes = list(BASE_ATTRIBUTES)
        if self.allow_links:
            attributes += LINK_ATTRIBUTES
        if self.allow_images or self.allow_videos:
            attributes += MEDIA_ATTRIBUTES
        return attributes


# The one policy every generated field is sanitized with
GENERATED_CONTENT_POLICY = SanitizerPolicy(
    allow_images=False,
    allow_links=True,
    allow_tables=True
)


class HtmlSanitizer:
    """Strips disallowed tags, attributes and schemes from an HTML fragment."""

    def sanitize(self, fragment: str, policy: SanitizerPolicy = GENERATED_CONTENT_POLICY) -> str:
        """
        Sanitize an HTML fragment under a policy.

        Args:
            fragment: Untrusted HTML
            policy: Content classes to keep

        Returns:
            Sanitized HTML fragment
        """
        if not fragment:
            return ''

        blocks = list(DANGEROUS_BLOCKS)
        if not policy.allow_videos:
            blocks.append('iframe')
        for tag in blocks:
            fragment = _block_pattern(tag).sub('', fragment)

        cleaned = bleach.clean(
            fragment,
            tags=policy.allowed_tags(),
            attributes=policy.allowed_attributes(),
            protocols=ALLOWED_PROTOCOLS,
            strip=True,
            strip_comments=True
        )

        cleaned = strip_event_handlers(cleaned)
        return JAVASCRIPT_SCHEME_PATTERN.sub('', cleaned)


def strip_event_handlers(fragment: str) -> str:
    """
    Remove on<event>= handlers left in a fragment.

    Handlers can survive cleaning as escaped tag text. Inside a tag any value is
    removed; in running text only quoted values are, so prose like
    "ontology = graph" is kept.
    """
    fragment = TAG_CONTEXT_PATTERN.sub(
        lambda m: m.group(1) + EVENT_HANDLER_PATTERN.sub('', m.group(2)) + m.group(3),
        fragment
    )
    return QUOTED_EVENT_HANDLER_PATTERN.sub('', fragment)


def strip_html_wrappers(fragment: str) -> str:
    """Drop doctype and html/head/body wrappers, keeping their contents."""
    for pattern in WRAPPER_PATTERNS:
        fragment = pattern.sub('', fragment)
    return fragment


def plain_text_from_html(fragment: str) -> str:
    """
    Project an HTML fragment onto whitespace-collapsed plain text.

    Args:
        fragment: HTML fragment

    Returns:
        Plain text with entities decoded and whitespace collapsed
    """
    text = strip_html_wrappers(fragment)
    text = STYLE_BLOCK_PATTERN.sub('', text)
    text = SCRIPT_BLOCK_PATTERN.sub('', text)
    text = TAG_PATTERN.sub(' ', text)
    text = html.unescape(text)
    return re.sub(r'\s+', ' ', text).strip()


def count_words(text: str) -> int:
    """Count whitespace-delimited tokens."""
    if not text:
        return 0
    return len(text.split())
