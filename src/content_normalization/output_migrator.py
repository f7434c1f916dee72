"""
Generated output migration module for the content normalization engine.
Loads stored content records, normalizes their generated outputs and writes them back.
"""
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from config import MIGRATION_BATCH_SIZE
from src.content_normalization.content_normalizer import ContentNormalizer, field_type_map
from src.content_normalization.models import is_count


logger = logging.getLogger(__name__)


def is_stored_content(value: Any) -> bool:
    """True when a stored value already has html, plain and a numeric charCount."""
    return (
        isinstance(value, Mapping)
        and 'html' in value
        and 'plain' in value
        and is_count(value.get('charCount'))
    )


class OutputsMigrator:
    """
    Migrates the generatedOutputs of stored content records to normalized content.
    Records already in normalized form are left untouched.
    """

    def __init__(self, normalizer: Optional[ContentNormalizer] = None,
                 batch_size: int = MIGRATION_BATCH_SIZE):
        """
        Initialize the OutputsMigrator.

        Args:
            normalizer: ContentNormalizer instance. If None, creates a new instance.
            batch_size: Number of records between progress reports
        """
        if batch_size <= 0:
            raise ValueError("batch_size must be positive")
        self.normalizer = normalizer or ContentNormalizer()
        self.batch_size = batch_size

    def normalise_outputs(self, outputs: Mapping[str, Any],
                          fields: Optional[Iterable[Any]] = None) -> Tuple[Dict[str, Any], bool]:
        """
        Normalize one record's outputs.

        Args:
            outputs: Mapping of field id to stored value
            fields: Template output field definitions

        Returns:
            Tuple of (normalized outputs, whether anything changed)
        """
        field_types = field_type_map(fields)
        changed = False
        normalised = {}

        for key, value in outputs.items():
            if is_stored_content(value):
                normalised[key] = value
                continue
            content = self.normalizer.ensure_normalized_content(value, field_types.get(key))
            normalised[key] = content.to_dict()
            changed = True

        return normalised, changed

    def migrate_records(self, records: List[Any],
                        templates: Optional[Mapping[str, Any]] = None) -> Tuple[List[Any], dict]:
        """
        Migrate a list of content records.

        Args:
            records: Content records with content_data.generatedOutputs
            templates: Template id to template definition

        Returns:
            Tuple of (migrated records, statistics dictionary)
        """
        templates = templates or {}
        stats = {
            'records_processed': 0,
            'records_updated': 0,
            'records_skipped': 0,
            'errors': 0
        }
        migrated = []

        for idx, record in enumerate(records, 1):
            stats['records_processed'] += 1

            if not isinstance(record, dict):
                logger.warning(f"Skipping non-object record at index {idx - 1}")
                stats['records_skipped'] += 1
                migrated.append(record)
                continue

            content_data = record.get('content_data')
            outputs = content_data.get('generatedOutputs') if isinstance(content_data, dict) else None
            if not isinstance(outputs, dict):
                stats['records_skipped'] += 1
                migrated.append(record)
                continue

            try:
                fields = self.template_fields(templates, record.get('template_id'))
                normalised, changed = self.normalise_outputs(outputs, fields)
            except Exception as e:
                logger.error(f"Failed to migrate content {record.get('id', 'unknown')}: {e}")
                stats['errors'] += 1
                migrated.append(record)
                continue

            if changed:
                record = {**record, 'content_data': {**content_data, 'generatedOutputs': normalised}}
                stats['records_updated'] += 1
                logger.info(f"Updated content {record.get('id', 'unknown')}")
            migrated.append(record)

            if idx % self.batch_size == 0:
                logger.info(f"Processed {idx}/{len(records)} records, updated {stats['records_updated']}")

        logger.info(
            f"Completed. Processed: {stats['records_processed']}, Updated: {stats['records_updated']}"
        )
        return migrated, stats

    def template_fields(self, templates: Mapping[str, Any], template_id: Optional[str]) -> List[Any]:
        """
        Look up the output field definitions of a template.

        Args:
            templates: Template id to template definition
            template_id: Template to look up

        Returns:
            List of output field definitions (empty if unknown)
        """
        if not template_id:
            return []

        template = templates.get(str(template_id))
        if template is None:
            logger.warning(f"Failed to load template {template_id}: not found")
            return []

        fields = template.get('fields') if isinstance(template, dict) else None
        output_fields = fields.get('outputFields') if isinstance(fields, dict) else None
        return output_fields if isinstance(output_fields, list) else []

    def load_json(self, filepath: str) -> Any:
        """
        Load a JSON document from disk.

        Raises:
            FileNotFoundError: If the file doesn't exist
            json.JSONDecodeError: If the file contains invalid JSON
        """
        file_path = Path(filepath)
        if not file_path.exists():
            logger.error(f"File not found: {filepath}")
            raise FileNotFoundError(f"File not found: {filepath}")

        try:
            with open(file_path, 'r', encoding='utf-8') as f:
                return json.load(f)
        except json.JSONDecodeError as e:
            logger.error(f"Invalid JSON in {filepath}: {e}")
            raise

    def write_json(self, target: Path, data: Any) -> None:
        """
        Write JSON next to the target and move it into place.

        The target is only replaced once the whole document is on disk, so a
        failed write leaves the previous file untouched.
        """
        target.parent.mkdir(parents=True, exist_ok=True)
        fd, temp_path = tempfile.mkstemp(dir=target.parent, prefix=f'.{target.name}.', suffix='.tmp')
        try:
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                json.dump(data, f, ensure_ascii=False, indent=2)
            os.replace(temp_path, target)
        except BaseException:
            logger.error(f"Failed to write {target}, leaving it unchanged")
            os.unlink(temp_path)
            raise

    def migrate_file(self, records_path: str, templates_path: Optional[str] = None,
                     output_path: Optional[str] = None, dry_run: bool = False) -> dict:
        """
        Migrate a JSON file of content records.

        Args:
            records_path: JSON list of content records
            templates_path: JSON object of template id to template definition
            output_path: Where to write migrated records (defaults to records_path)
            dry_run: Report statistics without writing anything

        Returns:
            Statistics dictionary
        """
        records = self.load_json(records_path)
        if not isinstance(records, list):
            logger.error(f"Invalid JSON format in {records_path}: expected a list")
            return {'records_processed': 0, 'records_updated': 0, 'records_skipped': 0, 'errors': 1}

        templates = self.load_json(templates_path) if templates_path else {}
        if not isinstance(templates, dict):
            logger.warning(f"Invalid JSON format in {templates_path}: expected an object, ignoring templates")
            templates = {}

        migrated, stats = self.migrate_records(records, templates)

        if dry_run:
            logger.info("Dry run, no records written")
            return stats

        target = Path(output_path or records_path)
        self.write_json(target, migrated)
        logger.info(f"Wrote {len(migrated)} records to {target}")

        return stats
