"""Utility functions for the Cesium tiler client."""

import os
from typing import Any, Optional


def source_key(asset_id: int, file_name: str) -> str:
    """Build the storage key for an asset's source file.

    Args:
        asset_id: Asset identifier
        file_name: Path or base name of the local file

    Returns:
        Key like "sources/42/model.glb"
    """
    return f"sources/{asset_id}/{os.path.basename(file_name)}"


def is_regular_file(path: str) -> bool:
    """Check if path is a regular file (symlinks to files count, directories do not).

    Args:
        path: Path to check

    Returns:
        True if path resolves to a regular file
    """
    return os.path.isfile(path)


def validate_directory(path: str) -> None:
    """Validate that a directory exists.

    Args:
        path: Path to directory

    Raises:
        FileNotFoundError: If path does not exist
        NotADirectoryError: If path is not a directory
    """
    if not os.path.exists(path):
        raise FileNotFoundError(f"Input directory does not exist: {path}")
    if not os.path.isdir(path):
        raise NotADirectoryError(f"Input path is not a directory: {path}")


def validate_output_path(path: str) -> None:
    """Validate that an output file can be created at path.

    Raises:
        FileNotFoundError: If the parent directory does not exist
        IsADirectoryError: If path is an existing directory
    """
    if os.path.isdir(path):
        raise IsADirectoryError(f"Output path is a directory: {path}")
    parent = os.path.dirname(os.path.abspath(path))
    if not os.path.isdir(parent):
        raise FileNotFoundError(f"Output directory does not exist: {parent}")


def format_error_body(error_body: Any, status_code: Optional[int] = None) -> str:
    """Format an API error body into a message.

    The API returns errors as ``{"code": "...", "message": "..."}``; anything
    else is rendered as text.

    Args:
        error_body: Parsed JSON body, raw text or None
        status_code: HTTP status code

    Returns:
        Error message string
    """
    prefix = f"API request failed with status {status_code}" if status_code else "API request failed"

    if isinstance(error_body, dict):
        code = error_body.get("code")
        message = error_body.get("message")
        if code and message:
            return f"{prefix}: {code}: {message}"
        if message:
            return f"{prefix}: {message}"
        if code:
            return f"{prefix}: {code}"
        return prefix

    if isinstance(error_body, str) and error_body.strip():
        return f"{prefix}: {error_body.strip()}"

    return prefix
