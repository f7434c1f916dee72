"""
Generated output migration script for the content normalization engine.
Normalizes the generatedOutputs of exported content records against their template fields.
"""
import argparse
import logging
import sys
from pathlib import Path

from src.content_normalization.output_migrator import OutputsMigrator
from config import DATA_DIR, LOG_FILE, LOG_LEVEL, MIGRATION_BATCH_SIZE


# Configure logging
logging.basicConfig(
    level=getattr(logging, LOG_LEVEL.upper(), logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.StreamHandler(sys.stdout),
        logging.FileHandler(LOG_FILE)
    ]
)
logger = logging.getLogger(__name__)


def main():
    """Main entry point for the migration script."""
    parser = argparse.ArgumentParser(
        description='Normalize generated outputs of stored content records'
    )
    parser.add_argument(
        'filepath',
        type=str,
        nargs='?',
        default=str(DATA_DIR / 'content.json'),
        help='Path to JSON file containing content records (default: data/content.json)'
    )
    parser.add_argument(
        '--templates',
        type=str,
        default=None,
        help='Path to JSON file mapping template ids to template definitions'
    )
    parser.add_argument(
        '--output',
        type=str,
        default=None,
        help='Where to write migrated records (default: overwrite the input file)'
    )
    parser.add_argument(
        '--batch-size',
        type=int,
        default=MIGRATION_BATCH_SIZE,
        help=f'Number of records between progress reports (default: {MIGRATION_BATCH_SIZE})'
    )
    parser.add_argument(
        '--dry-run',
        action='store_true',
        help='Report what would change without writing anything'
    )

    args = parser.parse_args()

    filepath = Path(args.filepath)
    if not filepath.exists():
        logger.error(f"File not found: {filepath}")
        sys.exit(1)

    if args.templates and not Path(args.templates).exists():
        logger.error(f"Templates file not found: {args.templates}")
        sys.exit(1)

    if args.batch_size <= 0:
        logger.error("Batch size must be positive")
        sys.exit(1)

    logger.info("=" * 60)
    logger.info("GENERATED OUTPUT MIGRATION")
    logger.info("=" * 60)
    logger.info(f"Input file:      {filepath}")
    logger.info(f"Templates file:  {args.templates or '-'}")
    logger.info(f"Output file:     {args.output or filepath}")
    logger.info(f"Batch size:      {args.batch_size}")
    logger.info(f"Dry run:         {args.dry_run}")
    logger.info("=" * 60)

    try:
        migrator = OutputsMigrator(batch_size=args.batch_size)
        stats = migrator.migrate_file(
            records_path=str(filepath),
            templates_path=args.templates,
            output_path=args.output,
            dry_run=args.dry_run
        )

        logger.info(f"Records processed:  {stats['records_processed']}")
        logger.info(f"Records updated:    {stats['records_updated']}")
        logger.info(f"Records skipped:    {stats['records_skipped']}")
        logger.info(f"Errors encountered: {stats['errors']}")

        if stats['errors'] > 0:
            logger.warning(f"Migration completed with {stats['errors']} errors")
            sys.exit(1)
        logger.info("Migration completed successfully!")
        sys.exit(0)

    except KeyboardInterrupt:
        logger.info("Migration interrupted by user")
        sys.exit(130)
    except Exception as e:
        logger.error(f"Migration failed: {e}", exc_info=True)
        sys.exit(1)


if __name__ == '__main__':
    main()
