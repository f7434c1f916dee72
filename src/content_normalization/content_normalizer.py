"""
Field content normalization module for the content normalization engine.
Routes raw field values by declared field type into sanitized HTML, plain text and counts.
"""
import json
import logging
import re
from typing import Any, Dict, Iterable, Mapping, Optional

from config import DEFAULT_FIELD_TYPE
from src.content_normalization.faq import FaqCoercer, render_faq_html, render_faq_plain
from src.content_normalization.markup import (
    EMPTY_PARAGRAPH,
    LITERAL_HTML_PATTERN,
    convert_markdown_to_html,
    convert_plain_text_to_html,
    is_likely_markdown
)
from src.content_normalization.models import FaqContent, NormalizedContent, is_count
from src.content_normalization.sanitizer import (
    GENERATED_CONTENT_POLICY,
    HtmlSanitizer,
    count_words,
    plain_text_from_html,
    strip_html_wrappers
)


logger = logging.getLogger(__name__)


PLAIN_TEXT = 'plainText'
RICH_TEXT = 'richText'
FAQ = 'faq'

RICH_TEXT_ALIASES = {'richtext', 'rich-text', 'html'}

BETWEEN_TAGS_NEWLINES = re.compile(r'>\s*\n\s*<')
NEWLINES = re.compile(r'\n+')


def resolve_field_type(field_type: Optional[str]) -> str:
    """
    Map a declared field type onto one of plainText, richText or faq.

    Args:
        field_type: Declared type, any case; None or unknown values fall back

    Returns:
        Canonical field type name
    """
    normalized = (field_type or '').strip().lower()
    if normalized in RICH_TEXT_ALIASES:
        return RICH_TEXT
    if normalized == FAQ:
        return FAQ
    if normalized and normalized != PLAIN_TEXT.lower():
        logger.debug(f"Unknown field type '{field_type}', treating it as {PLAIN_TEXT}")
    return PLAIN_TEXT


def extract_first_html_value(raw: Optional[str]) -> str:
    """
    Pull usable text out of a possibly JSON-wrapped value.

    A string shaped like a JSON object yields its first string-valued property.
    Anything else, including invalid JSON, is returned trimmed.

    Args:
        raw: Raw field text

    Returns:
        Extracted text
    """
    trimmed = raw.strip() if raw else ''
    if not trimmed:
        return ''
    if trimmed.startswith('{'):
        try:
            parsed = json.loads(trimmed)
        except (ValueError, RecursionError) as e:
            logger.debug(f"Rich text looks like JSON but does not parse: {e}")
            return trimmed
        if isinstance(parsed, dict):
            for value in parsed.values():
                if isinstance(value, str):
                    return value
    return trimmed


def _collapse_newlines(fragment: str) -> str:
    fragment = BETWEEN_TAGS_NEWLINES.sub('><', fragment)
    return NEWLINES.sub(' ', fragment)


def build_normalized_content(fragment: str, plain: Optional[str] = None,
                             faq: Optional[FaqContent] = None) -> NormalizedContent:
    """
    Assemble NormalizedContent from sanitized HTML, deriving text and counts.

    Args:
        fragment: Sanitized HTML (empty becomes the empty paragraph)
        plain: Plain text to store instead of the projection of fragment
        faq: FAQ payload to attach

    Returns:
        NormalizedContent whose counts match its plain text
    """
    html = fragment or EMPTY_PARAGRAPH
    if plain is None:
        plain = plain_text_from_html(html)
    return NormalizedContent(
        html=html,
        plain=plain,
        word_count=count_words(plain),
        char_count=len(plain),
        faq=faq
    )


def empty_content(field_type: Optional[str] = None) -> NormalizedContent:
    """The empty shell: an empty paragraph with zero counts."""
    faq = FaqContent() if resolve_field_type(field_type) == FAQ else None
    return NormalizedContent(html=EMPTY_PARAGRAPH, plain='', word_count=0, char_count=0, faq=faq)


class ContentNormalizer:
    """
    Normalizes generated field content into canonical NormalizedContent.

    Holds no per-call state; one instance can serve any number of concurrent callers.
    """

    def __init__(self, sanitizer: Optional[HtmlSanitizer] = None):
        """
        Initialize the ContentNormalizer.

        Args:
            sanitizer: HtmlSanitizer used for every HTML-producing path.
                       If None, creates a new instance.
        """
        self.sanitizer = sanitizer or HtmlSanitizer()
        self.faq_coercer = FaqCoercer(normalize_answer=self.normalize_rich_text)

    def sanitize(self, fragment: str) -> str:
        """
        Sanitize a generated fragment and drop line breaks between blocks.

        A failing sanitizer yields an empty fragment instead of an exception.
        """
        try:
            cleaned = self.sanitizer.sanitize(strip_html_wrappers(fragment), GENERATED_CONTENT_POLICY)
        except Exception as e:
            logger.error(f"Sanitizer failed, substituting empty content: {e}")
            return ''
        return _collapse_newlines(cleaned or '')

    def normalize_rich_text(self, raw: Optional[str]) -> NormalizedContent:
        """
        Normalize rich text given as markdown, HTML or plain text.

        Args:
            raw: Raw field text

        Returns:
            NormalizedContent
        """
        trimmed = raw.strip() if raw else ''

        if not trimmed:
            base_html = ''
        elif is_likely_markdown(trimmed):
            base_html = convert_markdown_to_html(trimmed)
        elif LITERAL_HTML_PATTERN.search(trimmed):
            base_html = trimmed
        else:
            base_html = convert_plain_text_to_html(trimmed)

        return build_normalized_content(self.sanitize(base_html))

    def normalize_plain_text(self, raw: Optional[str]) -> NormalizedContent:
        """
        Normalize plain text, promoting headings and lists where the text reads that way.

        Args:
            raw: Raw field text

        Returns:
            NormalizedContent
        """
        safe = raw.replace('\r\n', '\n') if raw else ''
        return build_normalized_content(self.sanitize(convert_plain_text_to_html(safe)))

    def coerce_faq_content(self, value: Any) -> FaqContent:
        """Coerce any FAQ-like value into canonical FaqContent."""
        return self.faq_coercer.coerce(value)

    def normalize_faq(self, value: Any) -> NormalizedContent:
        """
        Normalize an FAQ payload of any supported shape.

        Args:
            value: String, list, mapping or FaqContent

        Returns:
            NormalizedContent carrying the canonical faq payload
        """
        faq = self.coerce_faq_content(value)
        if not faq.entries and not faq.sections:
            return empty_content(FAQ)
        fragment = self.sanitize(render_faq_html(faq))
        return build_normalized_content(fragment, plain=render_faq_plain(faq), faq=faq)

    def normalize_field_content(self, raw: Optional[str], field_type: Optional[str]) -> NormalizedContent:
        """
        Normalize a raw string according to its declared field type.

        Args:
            raw: Raw field text
            field_type: Declared field type (plainText, richText/rich-text/html, faq)

        Returns:
            NormalizedContent
        """
        if not raw:
            return empty_content(field_type)
        if not isinstance(raw, str):
            raw = str(raw)

        resolved = resolve_field_type(field_type)
        if resolved == FAQ:
            return self.normalize_faq(raw)
        if resolved == RICH_TEXT:
            return self.normalize_rich_text(raw)
        return self.normalize_plain_text(raw)

    def ensure_normalized_content(self, value: Any, field_type: Optional[str]) -> NormalizedContent:
        """
        Return canonical content for a value that may already be normalized.

        Complete normalized objects are returned as they are. Partial ones are
        repaired from whichever of html/plain they carry, or from their faq
        payload for FAQ fields. Anything else is stringified and normalized.

        Args:
            value: Raw value, NormalizedContent or its stored dictionary shape
            field_type: Declared field type

        Returns:
            NormalizedContent
        """
        resolved = resolve_field_type(field_type)

        if isinstance(value, NormalizedContent):
            return value

        if isinstance(value, Mapping):
            html = value.get('html')
            plain = value.get('plain')
            has_counts = is_count(value.get('wordCount')) and is_count(value.get('charCount'))

            if isinstance(html, str) and isinstance(plain, str):
                if has_counts:
                    return NormalizedContent.from_dict(value)
                if resolved == FAQ and value.get('faq') is not None:
                    logger.debug("Rebuilding FAQ content without counts from its faq payload")
                    return self.normalize_faq(value['faq'])
                logger.debug("Recomputing counts for partially normalized content")
                return self.normalize_field_content(html or plain, field_type)

            if resolved == FAQ and value.get('faq') is not None:
                return self.normalize_faq(value['faq'])
            if isinstance(html, str):
                return self.normalize_field_content(html, field_type)
            if isinstance(plain, str):
                return self.normalize_field_content(plain, field_type)

            if resolved == FAQ:
                return self.normalize_faq(value)
            try:
                raw = json.dumps(value, default=str, skipkeys=True)
            except (ValueError, RecursionError) as e:
                logger.warning(f"Could not serialize field value, treating it as empty: {e}")
                raw = ''
        elif resolved == FAQ and isinstance(value, (list, tuple, FaqContent)):
            return self.normalize_faq(value)
        elif isinstance(value, str):
            raw = value
        elif value is None:
            raw = ''
        else:
            raw = str(value)

        if resolved == RICH_TEXT:
            raw = extract_first_html_value(raw)
        return self.normalize_field_content(raw, field_type)

    def normalize_outputs_map(self, outputs: Optional[Mapping[str, Any]],
                              fields: Optional[Iterable[Any]] = None) -> Dict[str, NormalizedContent]:
        """
        Normalize every generated output against its field definition.

        Args:
            outputs: Mapping of field id to raw value
            fields: Field definitions, each with an id and a type

        Returns:
            New mapping with the same keys, each value normalized
        """
        if not outputs:
            return {}

        field_types = field_type_map(fields)
        return {
            key: self.ensure_normalized_content(value, field_types.get(key, DEFAULT_FIELD_TYPE))
            for key, value in outputs.items()
        }


def field_type_map(fields: Optional[Iterable[Any]]) -> Dict[str, str]:
    """
    Build a field id to declared type lookup.

    Accepts mappings with 'id'/'type' keys or objects with id/type attributes;
    definitions without an id are skipped.
    """
    types: Dict[str, str] = {}
    for field in fields or []:
        if isinstance(field, Mapping):
            field_id, field_type = field.get('id'), field.get('type')
        else:
            field_id, field_type = getattr(field, 'id', None), getattr(field, 'type', None)
        if field_id is None:
            continue
        types[str(field_id)] = field_type if isinstance(field_type, str) else DEFAULT_FIELD_TYPE
    return types


_default_normalizer = ContentNormalizer()


def normalize_rich_text(raw: Optional[str]) -> NormalizedContent:
    return _default_normalizer.normalize_rich_text(raw)


def normalize_plain_text(raw: Optional[str]) -> NormalizedContent:
    return _default_normalizer.normalize_plain_text(raw)


def normalize_field_content(raw: Optional[str], field_type: Optional[str]) -> NormalizedContent:
    return _default_normalizer.normalize_field_content(raw, field_type)


def ensure_normalized_content(value: Any, field_type: Optional[str]) -> NormalizedContent:
    return _default_normalizer.ensure_normalized_content(value, field_type)


def normalize_outputs_map(outputs: Optional[Mapping[str, Any]],
                          fields: Optional[Iterable[Any]] = None) -> Dict[str, NormalizedContent]:
    return _default_normalizer.normalize_outputs_map(outputs, fields)


def coerce_faq_content(value: Any) -> FaqContent:
    return _default_normalizer.coerce_faq_content(value)
