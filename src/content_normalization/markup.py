"""
Markup conversion module for the content normalization engine.
Detects the shape of raw field text and converts markdown or plain text into block HTML.
"""
import re
from dataclasses import dataclass
from typing import List


@dataclass(frozen=True)
class GeneratedContentClasses:
    """
    CSS marker classes carried by every generated block so styling can target it.

    Attributes:
        heading_large: Class for h1/h2 headings
        heading_small: Class for h3-h6 headings
        paragraph: Class for paragraphs
        list: Class for ul/ol containers
        list_item: Class for list items
        faq: Class for the FAQ container
        faq_section: Class for a titled FAQ section
        faq_section_title: Class for a FAQ section title
        faq_item: Class for a single question/answer pair
        faq_question: Class for a FAQ question
        faq_answer: Class for a FAQ answer
    """
    heading_large: str = 'mix-generated-heading-large'
    heading_small: str = 'mix-generated-heading-small'
    paragraph: str = 'mix-generated-paragraph'
    list: str = 'mix-generated-list'
    list_item: str = 'mix-generated-list-item'
    faq: str = 'mix-generated-faq'
    faq_section: str = 'mix-generated-faq-section'
    faq_section_title: str = 'mix-generated-faq-section-title'
    faq_item: str = 'mix-generated-faq-item'
    faq_question: str = 'mix-generated-faq-question'
    faq_answer: str = 'mix-generated-faq-answer'


CLASSES = GeneratedContentClasses()

EMPTY_PARAGRAPH = f'<p class="{CLASSES.paragraph}"></p>'

HTML_TAG_PATTERN = re.compile(r'<\s*([a-z][a-z0-9]*)\b[^>]*>', re.IGNORECASE)
LITERAL_HTML_PATTERN = re.compile(r'<[a-z][\s\S]*>', re.IGNORECASE)

# Block-level markdown markers at the start of any line
MARKDOWN_HEADING_PATTERN = re.compile(r'^#{1,6}[ \t]+', re.MULTILINE)
MARKDOWN_BULLET_PATTERN = re.compile(r'^[-*+][ \t]+', re.MULTILINE)
MARKDOWN_ORDERED_PATTERN = re.compile(r'^\d+\.[ \t]+', re.MULTILINE)

HEADING_LINE = re.compile(r'^(#{1,6})\s+(.*)$')
ORDERED_ITEM_LINE = re.compile(r'^(\d+)\.\s+(.*)$')
UNORDERED_ITEM_LINE = re.compile(r'^[-*+]\s+(.*)$')
DESCRIPTOR_LINE = re.compile(r'^[^:]+:\s*.+$')
TITLE_CASE_TEXT = re.compile(r"^[A-Z0-9][A-Za-z0-9\s'’&-]*$")

INLINE_LINK = re.compile(r'\[([^\[\]]+)\]\(([^)]+)\)')
INLINE_BOLD = re.compile(r'\*\*(.+?)\*\*|__(.+?)__')
INLINE_ITALIC = re.compile(
    r'(?<!\*)\*(?!\s)(.+?)(?<!\s)\*(?!\*)|(?<!_)_(?!\s)(.+?)(?<!\s)_(?!_)'
)
INLINE_CODE = re.compile(r'`([^`]+)`')

BLOCK_SEPARATOR = re.compile(r'\n{2,}')

HEADING_MAX_LENGTH = 120
HEADING_MIN_LETTERS = 3
HEADING_MIN_WORDS_AFTER_COLON = 2
HEADING_MAX_WORDS_BEFORE_COLON = 6


def escape_html(text: str) -> str:
    """Escape the characters that could open markup. Quotes are left alone."""
    return text.replace('&', '&amp;').replace('<', '&lt;').replace('>', '&gt;')


def format_inline_markdown(text: str) -> str:
    """
    Escape a line of text and convert inline markdown spans into HTML tags.

    Escaping runs first, so markup typed by the user can never survive as tags.
    Links, bold, italic and code are then rewritten in that order.

    Args:
        text: Raw line text

    Returns:
        HTML-escaped text with inline spans converted
    """
    formatted = escape_html(text)
    formatted = INLINE_LINK.sub(
        lambda m: f'<a href="{m.group(2).replace(chr(34), "&quot;")}">{m.group(1)}</a>',
        formatted
    )
    formatted = INLINE_BOLD.sub(
        lambda m: f'<strong>{m.group(1) if m.group(1) is not None else m.group(2)}</strong>',
        formatted
    )
    formatted = INLINE_ITALIC.sub(
        lambda m: f'<em>{m.group(1) if m.group(1) is not None else m.group(2)}</em>',
        formatted
    )
    formatted = INLINE_CODE.sub(r'<code>\1</code>', formatted)
    return formatted


def looks_like_html(text: str) -> bool:
    """Return True when the text contains something shaped like an HTML start tag."""
    return bool(HTML_TAG_PATTERN.search(text))


def is_likely_markdown(text: str) -> bool:
    """
    Decide whether text should go through the markdown converter.

    HTML-looking text is never markdown. Otherwise a heading, bullet or
    ordered-list marker at the start of any line is enough.

    Args:
        text: Text to classify

    Returns:
        True if the text looks like markdown
    """
    trimmed = text.strip() if text else ''
    if not trimmed:
        return False
    if looks_like_html(trimmed):
        return False
    return bool(
        MARKDOWN_HEADING_PATTERN.search(trimmed)
        or MARKDOWN_BULLET_PATTERN.search(trimmed)
        or MARKDOWN_ORDERED_PATTERN.search(trimmed)
    )


class _MarkdownBlockWriter:
    """Accumulates block HTML while walking markdown lines."""

    def __init__(self):
        self.parts: List[str] = []
        self.paragraph: List[str] = []
        self.open_list = None  # 'ul', 'ol' or None

    def flush_paragraph(self) -> None:
        if not self.paragraph:
            return
        content = '<br />'.join(format_inline_markdown(line) for line in self.paragraph)
        if content.strip():
            self.parts.append(f'<p class="{CLASSES.paragraph}">{content}</p>')
        self.paragraph = []

    def close_list(self) -> None:
        if self.open_list:
            self.parts.append(f'</{self.open_list}>')
            self.open_list = None

    def list_item(self, tag: str, text: str) -> None:
        self.flush_paragraph()
        if self.open_list != tag:
            self.close_list()
            self.parts.append(f'<{tag} class="{CLASSES.list}">')
            self.open_list = tag
        self.parts.append(f'<li class="{CLASSES.list_item}">{format_inline_markdown(text)}</li>')

    def heading(self, level: int, text: str) -> None:
        self.flush_paragraph()
        self.close_list()
        level = min(level, 6)
        css_class = CLASSES.heading_large if level <= 2 else CLASSES.heading_small
        self.parts.append(
            f'<h{level} class="{css_class}">{format_inline_markdown(text)}</h{level}>'
        )


def convert_markdown_to_html(markdown: str) -> str:
    """
    Convert a constrained markdown subset into block HTML.

    Handles ATX headings, ordered and unordered lists and paragraphs. Consecutive
    plain lines form one paragraph joined with <br />. The output is not sanitized.

    Args:
        markdown: Markdown text

    Returns:
        HTML fragment
    """
    writer = _MarkdownBlockWriter()

    for raw_line in markdown.replace('\r\n', '\n').split('\n'):
        trimmed = raw_line.strip()

        if not trimmed:
            writer.flush_paragraph()
            writer.close_list()
            continue

        heading = HEADING_LINE.match(trimmed)
        if heading:
            writer.heading(len(heading.group(1)), heading.group(2))
            continue

        ordered = ORDERED_ITEM_LINE.match(trimmed)
        if ordered:
            writer.list_item('ol', ordered.group(2))
            continue

        unordered = UNORDERED_ITEM_LINE.match(trimmed)
        if unordered:
            writer.list_item('ul', unordered.group(1))
            continue

        writer.paragraph.append(trimmed)

    writer.flush_paragraph()
    writer.close_list()

    return ''.join(writer.parts)


def is_heading_text(value: str) -> bool:
    """
    Decide whether a single plain-text line reads as a heading.

    All of these must hold: at most 120 characters, at least 3 letters, no
    trailing period or exclamation mark, Title-Case-ish characters only, and
    for text with a colon at least 2 words after it and at most 6 before it.

    Args:
        value: A single trimmed line

    Returns:
        True if the line should render as a heading
    """
    trimmed = value.strip()
    if not trimmed or len(trimmed) > HEADING_MAX_LENGTH:
        return False

    letters = len(re.sub(r'[^A-Za-z]', '', trimmed))
    if letters < HEADING_MIN_LETTERS:
        return False

    stripped = re.sub(r'\s+', ' ', re.sub(r'[:?]', '', trimmed))
    if not TITLE_CASE_TEXT.match(stripped):
        return False

    if trimmed.endswith(('.', '!')):
        return False

    if ':' in trimmed:
        parts = trimmed.split(':')
        before_colon = parts[0].strip()
        after_colon = parts[1].strip()
        if not after_colon:
            return False
        if len(after_colon.split()) < HEADING_MIN_WORDS_AFTER_COLON:
            return False
        if len(before_colon.split()) > HEADING_MAX_WORDS_BEFORE_COLON:
            return False

    return True


def is_bullet_block(lines: List[str]) -> bool:
    """Every line starts with a -, * or + marker followed by whitespace."""
    return all(UNORDERED_ITEM_LINE.match(line) for line in lines)


def is_descriptor_block(lines: List[str]) -> bool:
    """At least two lines, each shaped like 'label: value'."""
    return len(lines) >= 2 and all(DESCRIPTOR_LINE.match(line) for line in lines)


def _descriptor_item(line: str) -> str:
    label, _, value = line.partition(':')
    label_html = f'<strong>{format_inline_markdown(label.strip())}:</strong>'
    return f'<li class="{CLASSES.list_item}">{label_html} {format_inline_markdown(value.strip())}</li>'


def convert_plain_text_to_html(text: str) -> str:
    """
    Promote plain text into semantic HTML block by block.

    Blocks are separated by blank lines. Each block becomes, in order of
    preference, a heading, a bullet list, a descriptor list or a paragraph.

    Args:
        text: Plain text

    Returns:
        HTML fragment (not sanitized)
    """
    html_blocks = []

    for block in BLOCK_SEPARATOR.split(text.replace('\r\n', '\n')):
        lines = [line.strip() for line in block.split('\n')]
        lines = [line for line in lines if line]
        if not lines:
            continue

        if len(lines) == 1 and is_heading_text(lines[0]):
            html_blocks.append(
                f'<h2 class="{CLASSES.heading_large}">{format_inline_markdown(lines[0])}</h2>'
            )
            continue

        if is_bullet_block(lines):
            items = ''.join(
                f'<li class="{CLASSES.list_item}">'
                f'{format_inline_markdown(UNORDERED_ITEM_LINE.match(line).group(1))}</li>'
                for line in lines
            )
            html_blocks.append(f'<ul class="{CLASSES.list}">{items}</ul>')
            continue

        if is_descriptor_block(lines):
            items = ''.join(_descriptor_item(line) for line in lines)
            html_blocks.append(f'<ul class="{CLASSES.list}">{items}</ul>')
            continue

        paragraph = '<br />'.join(format_inline_markdown(line) for line in lines)
        html_blocks.append(f'<p class="{CLASSES.paragraph}">{paragraph}</p>')

    return ''.join(html_blocks)
