"""
Tests for the OutputsMigrator module.
Tests change detection, template field lookup and JSON file migration.
"""
import json
import tempfile
from pathlib import Path
from unittest.mock import patch

import pytest

from src.content_normalization.markup import CLASSES
from src.content_normalization.output_migrator import OutputsMigrator, is_stored_content


STORED = {'html': '<p>kept</p>', 'plain': 'kept', 'wordCount': 1, 'charCount': 4}

TEMPLATES = {
    'tpl-1': {'fields': {'outputFields': [
        {'id': 'body', 'type': 'richText'},
        {'id': 'questions', 'type': 'faq'},
    ]}}
}


@pytest.fixture
def migrator():
    return OutputsMigrator(batch_size=2)


@pytest.fixture
def temp_dir():
    with tempfile.TemporaryDirectory() as directory:
        yield Path(directory)


def write_json(path: Path, data) -> str:
    with open(path, 'w', encoding='utf-8') as f:
        json.dump(data, f)
    return str(path)


def test_is_stored_content():
    assert is_stored_content(STORED)
    assert not is_stored_content({'html': '<p>x</p>', 'plain': 'x'})
    assert not is_stored_content({'html': '<p>x</p>', 'plain': 'x', 'charCount': True})
    assert not is_stored_content('text')


def test_normalise_outputs_leaves_stored_content(migrator):
    outputs, changed = migrator.normalise_outputs({'body': STORED})
    assert changed is False
    assert outputs['body'] is STORED


def test_normalise_outputs_converts_raw_values(migrator):
    outputs, changed = migrator.normalise_outputs(
        {'body': '# Heading', 'summary': 'Plain words'},
        [{'id': 'body', 'type': 'richText'}]
    )
    assert changed is True
    assert outputs['body']['html'] == f'<h1 class="{CLASSES.heading_large}">Heading</h1>'
    assert outputs['summary']['plain'] == 'Plain words'
    assert outputs['summary']['charCount'] == len('Plain words')


def test_template_fields(migrator):
    assert len(migrator.template_fields(TEMPLATES, 'tpl-1')) == 2
    assert migrator.template_fields(TEMPLATES, 'missing') == []
    assert migrator.template_fields(TEMPLATES, None) == []
    assert migrator.template_fields({'tpl-2': {'fields': None}}, 'tpl-2') == []


def test_migrate_records(migrator):
    records = [
        {'id': 'c1', 'template_id': 'tpl-1', 'content_data': {
            'title': 'unchanged',
            'generatedOutputs': {
                'body': '- one\n- two',
                'questions': [{'question': 'Q', 'answer': 'A'}],
            }
        }},
        {'id': 'c2', 'template_id': 'tpl-1', 'content_data': {'generatedOutputs': {'body': STORED}}},
        {'id': 'c3', 'content_data': None},
        'not a record',
    ]

    migrated, stats = migrator.migrate_records(records, TEMPLATES)

    assert stats == {'records_processed': 4, 'records_updated': 1, 'records_skipped': 2, 'errors': 0}
    assert len(migrated) == 4

    first = migrated[0]['content_data']
    assert first['title'] == 'unchanged'
    assert first['generatedOutputs']['body']['plain'] == 'one two'
    assert first['generatedOutputs']['questions']['faq']['entries'][0]['question'] == 'Q'
    assert migrated[1] is records[1]
    assert records[0]['content_data']['generatedOutputs']['body'] == '- one\n- two'


def test_migrate_file(migrator, temp_dir):
    records_path = write_json(temp_dir / 'content.json', [
        {'id': 'c1', 'template_id': 'tpl-1', 'content_data': {'generatedOutputs': {'body': '**Bold** claim'}}}
    ])
    templates_path = write_json(temp_dir / 'templates.json', TEMPLATES)
    output_path = temp_dir / 'out' / 'migrated.json'

    stats = migrator.migrate_file(records_path, templates_path, str(output_path))

    assert stats['records_updated'] == 1
    with open(output_path, 'r', encoding='utf-8') as f:
        migrated = json.load(f)
    body = migrated[0]['content_data']['generatedOutputs']['body']
    assert '<strong>Bold</strong>' in body['html']
    assert body['wordCount'] == 2


def test_migrate_file_dry_run_writes_nothing(migrator, temp_dir):
    records_path = write_json(temp_dir / 'content.json', [
        {'id': 'c1', 'content_data': {'generatedOutputs': {'body': 'text'}}}
    ])
    output_path = temp_dir / 'migrated.json'

    stats = migrator.migrate_file(records_path, output_path=str(output_path), dry_run=True)

    assert stats['records_updated'] == 1
    assert not output_path.exists()


def test_migrate_file_rejects_non_list(migrator, temp_dir):
    records_path = write_json(temp_dir / 'content.json', {'id': 'c1'})
    stats = migrator.migrate_file(records_path, dry_run=True)
    assert stats['errors'] == 1


def test_missing_file_raises(migrator, temp_dir):
    with pytest.raises(FileNotFoundError):
        migrator.migrate_file(str(temp_dir / 'absent.json'))


def test_invalid_json_raises(migrator, temp_dir):
    bad = temp_dir / 'bad.json'
    bad.write_text('{not json', encoding='utf-8')
    with pytest.raises(json.JSONDecodeError):
        migrator.migrate_file(str(bad))


def test_batch_size_must_be_positive():
    with pytest.raises(ValueError):
        OutputsMigrator(batch_size=0)


def test_stored_content_with_unusable_counts_is_migrated(migrator):
    broken = json.loads('{"html": "<p>kept</p>", "plain": "kept", "wordCount": 1, "charCount": NaN}')
    assert not is_stored_content(broken)

    outputs, changed = migrator.normalise_outputs({'body': broken}, [{'id': 'body', 'type': 'richText'}])
    assert changed is True
    assert outputs['body']['charCount'] == 4


def test_failed_write_keeps_original_file(migrator, temp_dir):
    records = [{'id': 'c1', 'content_data': {'generatedOutputs': {'body': 'text'}}}]
    records_path = write_json(temp_dir / 'content.json', records)

    with patch('src.content_normalization.output_migrator.json.dump', side_effect=OSError('disk full')):
        with pytest.raises(OSError):
            migrator.migrate_file(records_path)

    with open(records_path, 'r', encoding='utf-8') as f:
        assert json.load(f) == records
    assert [p.name for p in temp_dir.iterdir()] == ['content.json']


def test_migrate_file_in_place(migrator, temp_dir):
    records_path = write_json(temp_dir / 'content.json', [
        {'id': 'c1', 'content_data': {'generatedOutputs': {'body': 'text'}}}
    ])

    migrator.migrate_file(records_path)

    with open(records_path, 'r', encoding='utf-8') as f:
        migrated = json.load(f)
    assert migrated[0]['content_data']['generatedOutputs']['body']['plain'] == 'text'
    assert [p.name for p in temp_dir.iterdir()] == ['content.json']
