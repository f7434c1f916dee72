"""
Value types produced by the content normalization engine.
Every instance is built fresh per call; to_dict/from_dict map to the stored camelCase shape.
"""
import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional


def _as_str(value: Any, default: str = '') -> str:
    if isinstance(value, str):
        return value
    if value is None:
        return default
    return str(value)


def _as_count(value: Any) -> int:
    return int(value) if is_count(value) else 0


def is_count(value: Any) -> bool:
    """True for non-negative whole numbers; bools, NaN and infinities are not counts."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    if isinstance(value, float) and not (math.isfinite(value) and value.is_integer()):
        return False
    return value >= 0


@dataclass
class FaqEntry:
    """
    A single question and its normalized answer.

    Attributes:
        id: Stable identifier, provided by the source or synthesized from position
        question: Question text, never empty after coercion
        answer_html: Sanitized answer HTML
        answer_plain: Plain-text projection of the answer
    """
    id: str
    question: str
    answer_html: str
    answer_plain: str

    def to_dict(self) -> dict:
        """Convert to the stored dictionary shape."""
        return {
            'id': self.id,
            'question': self.question,
            'answerHtml': self.answer_html,
            'answerPlain': self.answer_plain,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'FaqEntry':
        """Create from a stored dictionary, trusting its contents."""
        return cls(
            id=_as_str(data.get('id')),
            question=_as_str(data.get('question')),
            answer_html=_as_str(data.get('answerHtml')),
            answer_plain=_as_str(data.get('answerPlain')),
        )


@dataclass
class FaqSection:
    """A titled group of FAQ entries."""
    id: str
    title: str
    entries: List[FaqEntry] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'title': self.title,
            'entries': [entry.to_dict() for entry in self.entries],
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'FaqSection':
        return cls(
            id=_as_str(data.get('id')),
            title=_as_str(data.get('title')),
            entries=[
                FaqEntry.from_dict(entry)
                for entry in data.get('entries') or []
                if isinstance(entry, Mapping)
            ],
        )


@dataclass
class FaqContent:
    """
    Canonical FAQ payload.

    entries holds every entry, flattened. sections is an optional grouping whose
    members may also appear in entries; renderers de-duplicate by id.
    """
    entries: List[FaqEntry] = field(default_factory=list)
    sections: Optional[List[FaqSection]] = None

    def section_entry_ids(self) -> set:
        """Ids of every entry that belongs to a section."""
        return {
            entry.id
            for section in self.sections or []
            for entry in section.entries
        }

    def standalone_entries(self) -> List[FaqEntry]:
        """Entries not already shown inside a section."""
        sectioned = self.section_entry_ids()
        return [entry for entry in self.entries if entry.id not in sectioned]

    def to_dict(self) -> dict:
        data: Dict[str, Any] = {'entries': [entry.to_dict() for entry in self.entries]}
        if self.sections is not None:
            data['sections'] = [section.to_dict() for section in self.sections]
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'FaqContent':
        sections = data.get('sections')
        return cls(
            entries=[
                FaqEntry.from_dict(entry)
                for entry in data.get('entries') or []
                if isinstance(entry, Mapping)
            ],
            sections=[
                FaqSection.from_dict(section)
                for section in sections
                if isinstance(section, Mapping)
            ] if isinstance(sections, list) else None,
        )


@dataclass
class NormalizedContent:
    """
    Canonical, display-ready form of a generated field.

    Attributes:
        html: Sanitized HTML fragment without document wrappers
        plain: Plain-text projection of html
        word_count: Number of whitespace-delimited tokens in plain
        char_count: Length of plain
        faq: Structured FAQ payload, only for FAQ-typed fields
    """
    html: str
    plain: str
    word_count: int
    char_count: int
    faq: Optional[FaqContent] = None

    def to_dict(self) -> dict:
        """Convert to the stored dictionary shape."""
        data: Dict[str, Any] = {
            'html': self.html,
            'plain': self.plain,
            'wordCount': self.word_count,
            'charCount': self.char_count,
        }
        if self.faq is not None:
            data['faq'] = self.faq.to_dict()
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'NormalizedContent':
        """Create from a stored dictionary. Values are taken as they are."""
        faq = data.get('faq')
        return cls(
            html=_as_str(data.get('html')),
            plain=_as_str(data.get('plain')),
            word_count=_as_count(data.get('wordCount')),
            char_count=_as_count(data.get('charCount')),
            faq=FaqContent.from_dict(faq) if isinstance(faq, Mapping) else None,
        )
