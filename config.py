"""
Configuration file for the content normalization engine
"""
import os
from pathlib import Path
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

# Project paths
PROJECT_ROOT = Path(__file__).parent
DATA_DIR = PROJECT_ROOT / "data"

# Field type configuration
DEFAULT_FIELD_TYPE = "plainText"  # used when a field has no declared type

# FAQ configuration
FAQ_FALLBACK_QUESTION = "FAQ Item"  # question label for free-text FAQ input
FAQ_FALLBACK_SECTION_TITLE = "FAQ Section"

# Migration configuration
MIGRATION_BATCH_SIZE = int(os.getenv("MIGRATION_BATCH_SIZE", "200"))  # records

# Logging configuration
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FILE = PROJECT_ROOT / "content_normalization.log"
