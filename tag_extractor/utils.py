"""Formatting helpers for reporting extraction results."""

from typing import Any, Dict

import numpy as np


def format_file_size(size_bytes: int) -> str:
    """Format file size in bytes to human-readable string.

    Args:
        size_bytes: File size in bytes

    Returns:
        Formatted string (e.g., "1.5 MB", "500 KB", "1024 B")
    """
    if size_bytes < 1024:
        return f"{size_bytes} B"
    elif size_bytes < 1024 * 1024:
        return f"{size_bytes / 1024:.1f} KB"
    elif size_bytes < 1024 * 1024 * 1024:
        return f"{size_bytes / (1024 * 1024):.1f} MB"
    else:
        return f"{size_bytes / (1024 * 1024 * 1024):.1f} GB"


def summarize_values(values: np.ndarray) -> Dict[str, Any]:
    """Summarize one tag's samples, ignoring NaN.

    Args:
        values: Sample values of a tag

    Returns:
        Dictionary with count (non-NaN samples), missing, min and max.
        min and max are None when every sample is NaN.
    """
    valid = values[~np.isnan(values)]
    return {
        "count": int(valid.size),
        "missing": int(values.size - valid.size),
        "min": float(valid.min()) if valid.size else None,
        "max": float(valid.max()) if valid.size else None,
    }
