"""
File operation utilities.

Saves dry-run previews and batch summaries as JSON and CSV reports.
"""

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Dict, Any, List, Optional

import pandas as pd


logger = logging.getLogger(__name__)


def save_json(data: Dict[str, Any], filepath: Path) -> bool:
    """
    Save data to JSON file.

    Args:
        data: Dictionary data to save
        filepath: Path to save the JSON file

    Returns:
        True if save successful, False otherwise
    """
    try:
        filepath.parent.mkdir(parents=True, exist_ok=True)

        with open(filepath, 'w', encoding='utf-8') as f:
            json.dump(data, f, ensure_ascii=False, indent=2, default=str)

        logger.debug(f"Saved JSON file: {filepath}")
        return True

    except (OSError, TypeError) as e:
        logger.error(f"Failed to save JSON file {filepath}: {e}", exc_info=True)
        return False


def save_csv(rows: List[Dict[str, Any]], filepath: Path, columns: Optional[List[str]] = None) -> bool:
    """
    Save rows to a CSV file.

    Args:
        rows: Records to save, one dict per row
        filepath: Path to save the CSV file
        columns: Column order; also used as the header when rows is empty

    Returns:
        True if save successful, False otherwise

    Examples:
        >>> save_csv([{"student_id": "s1", "credits": 2}], Path("output/preview.csv"))
        True
    """
    try:
        filepath.parent.mkdir(parents=True, exist_ok=True)

        df = pd.DataFrame(rows, columns=columns)
        df.to_csv(filepath, index=False, encoding='utf-8')

        logger.debug(f"Saved CSV file: {filepath} ({len(df)} rows)")
        return True

    except (OSError, ValueError) as e:
        logger.error(f"Failed to save CSV file {filepath}: {e}", exc_info=True)
        return False


def generate_filename(prefix: str, extension: str) -> str:
    """
    Generate timestamped filename.

    Examples:
        >>> generate_filename("preview", "csv")  # "preview_20260209_103045.csv"
    """
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    return f"{prefix}_{timestamp}.{extension}"
