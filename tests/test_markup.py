"""
Tests for the markup module.
Covers shape classification, inline formatting and the markdown/plain-text block converters.
"""
import pytest
from hypothesis import given, strategies as st, settings

from src.content_normalization.markup import (
    CLASSES,
    convert_markdown_to_html,
    convert_plain_text_to_html,
    format_inline_markdown,
    is_descriptor_block,
    is_heading_text,
    is_likely_markdown
)


@pytest.mark.parametrize('text,expected', [
    ('', False),
    ('   \n  ', False),
    ('# Title', True),
    ('###### Deep', True),
    ('Intro line\n- first item', True),
    ('* starred item', True),
    ('+ plus item', True),
    ('1. first step', True),
    ('Intro\n12. twelfth step', True),
    ('Just a sentence.', False),
    ('#hashtag without space', False),
    ('-dash without space', False),
    ('<p># Not markdown</p>', False),
    ('- item\n<div>html wins</div>', False),
])
def test_is_likely_markdown(text, expected):
    assert is_likely_markdown(text) is expected


def test_inline_escapes_markup_before_formatting():
    assert format_inline_markdown('<script>alert(1)</script>') == '&lt;script&gt;alert(1)&lt;/script&gt;'
    assert format_inline_markdown('Tom & Jerry') == 'Tom &amp; Jerry'


def test_inline_spans():
    assert format_inline_markdown('[Docs](https://example.com)') == '<a href="https://example.com">Docs</a>'
    assert format_inline_markdown('**bold** and __also__') == '<strong>bold</strong> and <strong>also</strong>'
    assert format_inline_markdown('*soft* and _quiet_') == '<em>soft</em> and <em>quiet</em>'
    assert format_inline_markdown('run `make test`') == 'run <code>make test</code>'


def test_inline_link_after_bracket_run():
    assert format_inline_markdown('[[Docs](https://example.com)') == '[<a href="https://example.com">Docs</a>'
    assert format_inline_markdown('[' * 100000) == '[' * 100000


def test_inline_italic_ignores_spaced_asterisks():
    assert format_inline_markdown('2 * 3 * 4') == '2 * 3 * 4'


def test_inline_bold_is_not_reparsed_as_italic():
    assert format_inline_markdown('**strong**') == '<strong>strong</strong>'


# Property: escaped text never contains a raw angle bracket outside generated tags
@given(st.text(alphabet=st.characters(blacklist_characters='*_`[]()'), max_size=200))
@settings(max_examples=100)
def test_inline_without_markers_is_plain_escape(text):
    formatted = format_inline_markdown(text)
    assert '<' not in formatted
    assert '>' not in formatted


def test_markdown_headings_clamp_and_classes():
    html = convert_markdown_to_html('# Big\n### Small')
    assert html == (
        f'<h1 class="{CLASSES.heading_large}">Big</h1>'
        f'<h3 class="{CLASSES.heading_small}">Small</h3>'
    )


def test_markdown_seven_hashes_is_a_paragraph():
    html = convert_markdown_to_html('####### Too deep')
    assert html == f'<p class="{CLASSES.paragraph}">####### Too deep</p>'


def test_markdown_lists_switch_and_close():
    html = convert_markdown_to_html('- one\n- two\n1. first\n2. second')
    assert html == (
        f'<ul class="{CLASSES.list}">'
        f'<li class="{CLASSES.list_item}">one</li>'
        f'<li class="{CLASSES.list_item}">two</li>'
        f'</ul>'
        f'<ol class="{CLASSES.list}">'
        f'<li class="{CLASSES.list_item}">first</li>'
        f'<li class="{CLASSES.list_item}">second</li>'
        f'</ol>'
    )


def test_markdown_paragraph_lines_join_with_breaks():
    html = convert_markdown_to_html('First line\r\nsecond line\n\n- item')
    assert html.startswith(f'<p class="{CLASSES.paragraph}">First line<br />second line</p>')
    assert html.endswith('</ul>')


def test_markdown_list_then_paragraph():
    html = convert_markdown_to_html('- item\ntrailing text')
    assert html == (
        f'<ul class="{CLASSES.list}"><li class="{CLASSES.list_item}">item</li></ul>'
        f'<p class="{CLASSES.paragraph}">trailing text</p>'
    )


@pytest.mark.parametrize('line,expected', [
    ('Key Benefits', True),
    ('What Is Included?', True),
    ('Pricing: Plans And Options', True),
    ("Chef's Notes & Tips", True),
    ('2024 Roadmap', True),
    ('Note: see the label below.', False),
    ('Note: Details', False),
    ('One Two Three Four Five Six Seven: Alpha Beta', False),
    ('lowercase start', False),
    ('AB', False),
    ('Welcome!', False),
    ('Sentence ending in a period.', False),
    ('A' * 121, False),
    ('Price (USD)', False),
])
def test_is_heading_text(line, expected):
    assert is_heading_text(line) is expected


def test_descriptor_block_needs_two_lines():
    assert is_descriptor_block(['Color: Red', 'Size: Large'])
    assert not is_descriptor_block(['Color: Red'])
    assert not is_descriptor_block(['Color: Red', 'no colon here'])


def test_plain_text_heading_and_paragraph():
    html = convert_plain_text_to_html('Key Benefits\n\nThis product helps.')
    assert html == (
        f'<h2 class="{CLASSES.heading_large}">Key Benefits</h2>'
        f'<p class="{CLASSES.paragraph}">This product helps.</p>'
    )


def test_plain_text_note_is_not_a_heading():
    html = convert_plain_text_to_html('Note: see the label below.')
    assert html == f'<p class="{CLASSES.paragraph}">Note: see the label below.</p>'


def test_plain_text_bullets():
    html = convert_plain_text_to_html('- fast\n* simple\n+ **safe**')
    assert html == (
        f'<ul class="{CLASSES.list}">'
        f'<li class="{CLASSES.list_item}">fast</li>'
        f'<li class="{CLASSES.list_item}">simple</li>'
        f'<li class="{CLASSES.list_item}"><strong>safe</strong></li>'
        f'</ul>'
    )


def test_plain_text_descriptor_list_keeps_later_colons():
    html = convert_plain_text_to_html('Color: Red\nHours: 9:00 to 17:00')
    assert html == (
        f'<ul class="{CLASSES.list}">'
        f'<li class="{CLASSES.list_item}"><strong>Color:</strong> Red</li>'
        f'<li class="{CLASSES.list_item}"><strong>Hours:</strong> 9:00 to 17:00</li>'
        f'</ul>'
    )


def test_plain_text_multiline_paragraph():
    html = convert_plain_text_to_html('  first line  \n\tsecond line\n')
    assert html == f'<p class="{CLASSES.paragraph}">first line<br />second line</p>'


def test_plain_text_blank_input():
    assert convert_plain_text_to_html('\n\n\n') == ''
