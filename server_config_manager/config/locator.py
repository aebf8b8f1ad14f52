"""
Configuration file locator.

Distinguishes a missing file from one that exists but cannot be used, so
callers can log the right diagnostic before falling back.
"""

import os
import stat
from pathlib import Path

from ..models import FileLocation, FileStatus


def locate_config_file(path: Path) -> FileLocation:
    """
    Probe the configuration file without reading it.

    Args:
        path: Configuration file path

    Returns:
        FileLocation with EXISTS, NOT_EXISTS or ACCESS_ERROR
    """
    path = Path(path)

    try:
        st = os.stat(path)
    except (FileNotFoundError, NotADirectoryError):
        return FileLocation(path=path, status=FileStatus.NOT_EXISTS)
    except OSError as e:
        return FileLocation(path=path, status=FileStatus.ACCESS_ERROR, detail=str(e))

    if not stat.S_ISREG(st.st_mode):
        return FileLocation(path=path, status=FileStatus.ACCESS_ERROR, detail="not a regular file")

    if not os.access(path, os.R_OK):
        return FileLocation(path=path, status=FileStatus.ACCESS_ERROR, detail="permission denied")

    return FileLocation(path=path, status=FileStatus.EXISTS)
