"""Project configuration and directory paths.

This module defines the project's directory structure, the source URLs and the
location of the pipeline settings file, and ensures all required directories
exist when the module is imported.

Directory Structure:
- data/external: Raw payloads as downloaded (Parlinfo JSON, Wikipedia HTML)
- data/raw: Initial parsed data (flat CSVs straight out of the extractors)
- data/processed: Final tables ready for plotting and analysis
- reports/figures: Rendered charts
"""

import os
from pathlib import Path
import sys
from typing import Optional

from dotenv import load_dotenv
from loguru import logger
from tqdm import tqdm

# Load environment variables from .env file if it exists
load_dotenv()

DEFAULT_LOG_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"
)


def configure_logging(
    level: str = "INFO",
    log_file: Optional[Path] = None,
    rotation: str = "10 MB",
    retention: str = "30 days",
    format: str = DEFAULT_LOG_FORMAT,
) -> None:
    """Configure loguru logging.

    Console output goes through ``tqdm.write`` so that log lines do not break
    progress bars.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Path to log file. If None, logs only to the console.
        rotation: Log rotation condition (e.g., "10 MB", "1 day")
        retention: Log retention period (e.g., "30 days")
        format: Log message format
    """
    # Remove default handler
    logger.remove()

    def tqdm_write(msg):
        tqdm.write(msg, end="", file=sys.stderr)

    logger.add(tqdm_write, level=level, format=format, colorize=True)

    # Add file handler if log_file is specified
    if log_file:
        # Ensure log directory exists
        log_file.parent.mkdir(parents=True, exist_ok=True)

        logger.add(
            str(log_file),
            rotation=rotation,
            retention=retention,
            level=level,
            format=format,
            backtrace=True,
            diagnose=True,
            enqueue=True,  # Makes logging thread-safe
        )


# Base paths
PROJ_ROOT = Path(__file__).resolve().parents[1]
PACKAGE_DIR = Path(__file__).resolve().parent

# Configure default logging
LOG_DIR = PROJ_ROOT / "logs"
LOG_FILE = LOG_DIR / "app.log"
configure_logging(level=os.getenv("LOG_LEVEL", "INFO"), log_file=LOG_FILE)

logger.debug(f"Project root: {PROJ_ROOT}")

# Data directories
DATA_DIR = PROJ_ROOT / "data"
RAW_DATA_DIR = DATA_DIR / "raw"  # Flat CSVs straight out of the extractors
PROCESSED_DATA_DIR = DATA_DIR / "processed"  # Final tables for plots and regression
EXTERNAL_DATA_DIR = DATA_DIR / "external"  # Downloaded JSON/HTML payloads

# Other directories
REPORTS_DIR = PROJ_ROOT / "reports"
FIGURES_DIR = REPORTS_DIR / "figures"

# Pipeline settings (target role, corrections, rename map, strip rules, ...)
SETTINGS_FILE = Path(
    os.getenv("PIPELINE_SETTINGS", str(PACKAGE_DIR / "resources" / "pipeline_settings.json"))
)

# Sources
PARLINFO_API_URL = os.getenv(
    "PARLINFO_API_URL",
    "https://lop.parl.ca/ParlinfoWebAPI/Person/SearchAndRefine?&refiners=5-1,&projectionId=5"
    "&callback=jQuery3600941572194102592_1741730322226&_=1741730322227",
)
POLLS_WIKI_URL = os.getenv(
    "POLLS_WIKI_URL",
    "https://en.wikipedia.org/wiki/Opinion_polling_for_the_45th_Canadian_federal_election",
)
USER_AGENT = os.getenv("SCRAPER_USER_AGENT", "canadian-politics-pipeline/0.1 (research use)")

# Ensure all directories exist
for directory in [
    DATA_DIR, RAW_DATA_DIR, PROCESSED_DATA_DIR, EXTERNAL_DATA_DIR,
    REPORTS_DIR, FIGURES_DIR, LOG_DIR,
]:
    directory.mkdir(parents=True, exist_ok=True)
    logger.debug(f"Ensured directory exists: {directory}")

logger.debug("Configuration loaded")
