"""
FAQ coercion and rendering module for the content normalization engine.
Turns arrays, nested objects, sectioned groups and stringified JSON into one FaqContent shape.
"""
import json
import logging
from typing import Any, Callable, Iterable, List, Mapping, Optional, Sequence

from config import FAQ_FALLBACK_QUESTION, FAQ_FALLBACK_SECTION_TITLE
from src.content_normalization.markup import CLASSES, escape_html
from src.content_normalization.sanitizer import plain_text_from_html
from src.content_normalization.models import (
    FaqContent,
    FaqEntry,
    FaqSection,
    NormalizedContent
)


logger = logging.getLogger(__name__)


QUESTION_KEYS = ('question', 'title')
ANSWER_KEYS = ('answerHtml', 'answer', 'answer_text', 'content', 'body', 'description')
ENTRY_LIST_KEYS = ('entries', 'items', 'faq', 'questions')
SECTION_LIST_KEYS = ('sections', 'groups')
SECTION_TITLE_KEYS = ('title', 'name', 'heading')

# Nested faq wrappers (objects or stringified JSON) unwrapped before giving up
MAX_FAQ_NESTING = 16


def _text_value(value: Any) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, bool) or value is None:
        return ''
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, Mapping):
        # Answers stored as already-normalized content
        for key in ('html', 'plain'):
            if isinstance(value.get(key), str):
                return value[key]
    return ''


def first_text(data: Mapping[str, Any], keys: Iterable[str]) -> str:
    """Return the first non-blank text value found under any of the keys."""
    for key in keys:
        text = _text_value(data.get(key))
        if text.strip():
            return text
    return ''


def first_list(data: Mapping[str, Any], keys: Iterable[str]) -> Optional[list]:
    """Return the first list-valued property found under any of the keys."""
    for key in keys:
        value = data.get(key)
        if isinstance(value, (list, tuple)):
            return list(value)
    return None


class FaqCoercer:
    """
    Coerces arbitrary FAQ-like values into canonical FaqContent.

    Every answer is routed through the injected rich-text normalizer, so FAQ
    answers accept the same markdown/HTML/plain input as any rich-text field.
    """

    def __init__(self, normalize_answer: Callable[[str], NormalizedContent]):
        """
        Initialize the FaqCoercer.

        Args:
            normalize_answer: Rich-text normalizer applied to every answer
        """
        self.normalize_answer = normalize_answer

    def coerce(self, value: Any) -> FaqContent:
        """
        Coerce a value of any supported shape into FaqContent.

        Args:
            value: String, list, mapping or FaqContent

        Returns:
            Canonical FaqContent (possibly with no entries)
        """
        return self._coerce(value, 0)

    def _coerce(self, value: Any, depth: int) -> FaqContent:
        if value is None:
            return FaqContent()
        if isinstance(value, FaqContent):
            return value
        if depth > MAX_FAQ_NESTING:
            logger.warning(f"FAQ payload nested deeper than {MAX_FAQ_NESTING} levels, ignoring it")
            return FaqContent()
        if isinstance(value, str):
            return self._coerce_string(value, depth)
        if isinstance(value, (list, tuple)):
            return FaqContent(entries=self._coerce_entries(value))
        if isinstance(value, Mapping):
            return self._coerce_mapping(value, depth)
        return self._coerce_string(str(value), depth)

    def _coerce_string(self, value: str, depth: int) -> FaqContent:
        trimmed = value.strip()
        if not trimmed:
            return FaqContent()

        if trimmed.startswith(('{', '[')):
            try:
                parsed = json.loads(trimmed)
            except (ValueError, RecursionError) as e:
                logger.debug(f"FAQ text is not valid JSON, treating it as a single answer: {e}")
            else:
                return self._coerce(parsed, depth + 1)

        return FaqContent(entries=[
            self._build_entry(self._entry_id(1), FAQ_FALLBACK_QUESTION, trimmed)
        ])

    def _coerce_mapping(self, data: Mapping[str, Any], depth: int) -> FaqContent:
        entry_items = first_list(data, ENTRY_LIST_KEYS)
        section_items = first_list(data, SECTION_LIST_KEYS)

        if entry_items is None and section_items is None:
            nested = data.get('faq')
            if isinstance(nested, (Mapping, str)):
                return self._coerce(nested, depth + 1)
            if first_text(data, QUESTION_KEYS) or first_text(data, ANSWER_KEYS):
                entry_items = [data]
            else:
                logger.debug(f"No FAQ entries found in object with keys {sorted(data.keys())}")
                return FaqContent()

        entries = self._coerce_entries(entry_items or [])
        if section_items is None:
            return FaqContent(entries=entries)

        sections = [
            section
            for section in (
                self._coerce_section(item, index)
                for index, item in enumerate(section_items, 1)
            )
            if section is not None
        ]

        known_ids = {entry.id for entry in entries}
        for section in sections:
            for entry in section.entries:
                if entry.id not in known_ids:
                    entries.append(entry)
                    known_ids.add(entry.id)

        return FaqContent(entries=entries, sections=sections)

    def _coerce_section(self, item: Any, index: int) -> Optional[FaqSection]:
        if isinstance(item, FaqSection):
            return item
        if isinstance(item, Mapping):
            title = first_text(item, SECTION_TITLE_KEYS).strip() or FAQ_FALLBACK_SECTION_TITLE
            section_id = first_text(item, ('id',)).strip() or self._section_id(index)
            source = first_list(item, ENTRY_LIST_KEYS) or []
        elif isinstance(item, (list, tuple)):
            title = FAQ_FALLBACK_SECTION_TITLE
            section_id = self._section_id(index)
            source = list(item)
        else:
            logger.debug(f"Skipping FAQ section {index}: unsupported type {type(item).__name__}")
            return None

        return FaqSection(
            id=section_id,
            title=title,
            entries=self._coerce_entries(source, section_index=index)
        )

    def _coerce_entries(self, items: Sequence[Any], section_index: Optional[int] = None) -> List[FaqEntry]:
        entries = []
        for position, item in enumerate(items, 1):
            entry = self._coerce_entry(item, position, section_index)
            if entry is not None:
                entries.append(entry)
        return entries

    def _coerce_entry(self, item: Any, position: int, section_index: Optional[int]) -> Optional[FaqEntry]:
        if item is None:
            return None
        if isinstance(item, FaqEntry):
            return item

        default_question = f'Question {position}'
        entry_id = self._entry_id(position, section_index)

        if isinstance(item, Mapping):
            question = first_text(item, QUESTION_KEYS).strip() or default_question
            answer = first_text(item, ANSWER_KEYS)
            entry_id = first_text(item, ('id',)).strip() or entry_id
        else:
            question = default_question
            answer = _text_value(item)

        return self._build_entry(entry_id, question, answer)

    def _build_entry(self, entry_id: str, question: str, answer: str) -> FaqEntry:
        normalized = self.normalize_answer(answer)
        return FaqEntry(
            id=entry_id,
            question=question,
            answer_html=normalized.html,
            answer_plain=normalized.plain
        )

    @staticmethod
    def _section_id(index: int) -> str:
        return f'faq-section-{index}'

    @staticmethod
    def _entry_id(position: int, section_index: Optional[int] = None) -> str:
        if section_index is None:
            return f'faq-entry-{position}'
        return f'faq-section-{section_index}-entry-{position}'


def _render_entry_html(entry: FaqEntry) -> str:
    return (
        f'<div class="{CLASSES.faq_item}">'
        f'<h4 class="{CLASSES.faq_question}">{escape_html(entry.question)}</h4>'
        f'<div class="{CLASSES.faq_answer}">{entry.answer_html}</div>'
        f'</div>'
    )


def render_faq_html(faq: FaqContent) -> str:
    """
    Render FAQ content as HTML.

    Sections come first, each with its title and entries. Entries that are not
    already part of a section (matched by id) follow as standalone items.

    Args:
        faq: Canonical FAQ content

    Returns:
        HTML fragment wrapped in the FAQ container (not sanitized)
    """
    parts = [f'<div class="{CLASSES.faq}">']

    for section in faq.sections or []:
        parts.append(f'<div class="{CLASSES.faq_section}">')
        parts.append(f'<h3 class="{CLASSES.faq_section_title}">{escape_html(section.title)}</h3>')
        parts.extend(_render_entry_html(entry) for entry in section.entries)
        parts.append('</div>')

    parts.extend(_render_entry_html(entry) for entry in faq.standalone_entries())
    parts.append('</div>')

    return ''.join(parts)


def _render_entry_plain(entry: FaqEntry) -> str:
    if entry.answer_plain:
        return f'{entry.question}\n{entry.answer_plain}'
    return entry.question


def render_faq_plain(faq: FaqContent) -> str:
    """Flatten FAQ content into a blank-line separated transcript."""
    blocks = []
    for section in faq.sections or []:
        blocks.append(section.title)
        blocks.extend(_render_entry_plain(entry) for entry in section.entries)
    blocks.extend(_render_entry_plain(entry) for entry in faq.standalone_entries())
    return '\n\n'.join(blocks)


def _has_text(entry: FaqEntry) -> bool:
    answer_text = entry.answer_plain.strip() or plain_text_from_html(entry.answer_html)
    return bool(entry.question.strip() or answer_text)


def prune_faq_content(faq: FaqContent, remove_empty_entries: bool = True) -> FaqContent:
    """
    Drop blank entries, and sections left without entries.

    Args:
        faq: FAQ content to prune
        remove_empty_entries: When False the content is copied unchanged

    Returns:
        New FaqContent
    """
    def keep(entries: List[FaqEntry]) -> List[FaqEntry]:
        if not remove_empty_entries:
            return list(entries)
        return [entry for entry in entries if _has_text(entry)]

    sections = None
    if faq.sections is not None:
        sections = []
        for section in faq.sections:
            entries = keep(section.entries)
            if remove_empty_entries and not entries:
                continue
            sections.append(FaqSection(id=section.id, title=section.title, entries=entries))

    return FaqContent(entries=keep(faq.entries), sections=sections)
