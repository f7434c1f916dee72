"""
Content normalization module.
Converts generated field content into sanitized HTML, plain text and counts.
"""
from src.content_normalization.content_normalizer import (
    ContentNormalizer,
    coerce_faq_content,
    ensure_normalized_content,
    extract_first_html_value,
    normalize_field_content,
    normalize_outputs_map,
    normalize_plain_text,
    normalize_rich_text
)
from src.content_normalization.faq import prune_faq_content, render_faq_html, render_faq_plain
from src.content_normalization.markup import (
    CLASSES,
    GeneratedContentClasses,
    format_inline_markdown,
    is_likely_markdown
)
from src.content_normalization.models import FaqContent, FaqEntry, FaqSection, NormalizedContent
from src.content_normalization.sanitizer import HtmlSanitizer, SanitizerPolicy
from src.content_normalization.output_migrator import OutputsMigrator

__all__ = [
    'CLASSES',
    'ContentNormalizer',
    'FaqContent',
    'FaqEntry',
    'FaqSection',
    'GeneratedContentClasses',
    'HtmlSanitizer',
    'NormalizedContent',
    'OutputsMigrator',
    'SanitizerPolicy',
    'coerce_faq_content',
    'ensure_normalized_content',
    'extract_first_html_value',
    'format_inline_markdown',
    'is_likely_markdown',
    'normalize_field_content',
    'normalize_outputs_map',
    'normalize_plain_text',
    'normalize_rich_text',
    'prune_faq_content',
    'render_faq_html',
    'render_faq_plain'
]
