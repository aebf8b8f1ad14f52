"""
Configuration loader for the server JSON configuration file.

Reads raw bytes and decodes them into a plain document. Type checking and
merging happen in the merger.
"""

import json
from pathlib import Path
from typing import Any, BinaryIO, Dict, Union

from ..errors import ConfigParseError, ErrorCode
from ..models import FieldIssue


class ConfigLoader:
    """Loads the JSON configuration document from disk."""

    def __init__(self, config_path: Path):
        """
        Initialize configuration loader.

        Args:
            config_path: Path to the configuration file (conf/zinx.json)
        """
        self.config_path = Path(config_path)

    def read_bytes(self) -> bytes:
        """
        Read the configuration file.

        Raises:
            FileNotFoundError: If the file disappeared since it was located
            PermissionError: If the file is not readable
        """
        with open(self.config_path, "rb") as f:
            return f.read()

    def load_document(self) -> Dict[str, Any]:
        """
        Read and decode the configuration file.

        Returns:
            Top-level JSON object

        Raises:
            OSError: If the file cannot be read
            ConfigParseError: If the content is not a JSON object
        """
        return parse_document(self.read_bytes(), str(self.config_path))


def parse_document(raw: Union[bytes, str, BinaryIO], file_path: str = "<memory>") -> Dict[str, Any]:
    """
    Decode a configuration document.

    Args:
        raw: File content, or an open binary file handle
        file_path: Name used in error messages

    Returns:
        Top-level JSON object

    Raises:
        ConfigParseError: On invalid or too deeply nested JSON, or a non-object document
    """
    if hasattr(raw, "read"):
        raw = raw.read()

    try:
        data = json.loads(raw)
    except UnicodeDecodeError as e:
        raise ConfigParseError(
            file_path,
            [FieldIssue(key="<document>", message=f"not valid UTF-8: {e.reason}")],
            code=ErrorCode.SYNTAX_ERROR
        ) from e
    except json.JSONDecodeError as e:
        raise ConfigParseError(
            file_path,
            [FieldIssue(key="<document>", message=f"{e.msg} at line {e.lineno} column {e.colno}")],
            code=ErrorCode.SYNTAX_ERROR
        ) from e
    except ValueError as e:
        raise ConfigParseError(
            file_path,
            [FieldIssue(key="<document>", message=str(e))],
            code=ErrorCode.SYNTAX_ERROR
        ) from e
    except RecursionError as e:
        raise ConfigParseError(
            file_path,
            [FieldIssue(key="<document>", message="document is nested too deeply")],
            code=ErrorCode.SYNTAX_ERROR
        ) from e

    if not isinstance(data, dict):
        raise ConfigParseError(
            file_path,
            [FieldIssue(
                key="<document>",
                message="top level must be a JSON object",
                value=type(data).__name__
            )],
            code=ErrorCode.SYNTAX_ERROR
        )

    return data
