"""
Configuration merger for the server configuration file.

Overlays a decoded JSON document onto the current snapshot:
1. Keys are matched case-insensitively against per-section key tables
2. Keys absent from the document keep their current value, at every level
3. Every touched section is re-validated; any mismatch rejects the whole
   document and nothing is applied

Unknown keys are ignored.
"""

import logging
from typing import Any, Dict, List, Mapping, Optional, Tuple, Type

from pydantic import BaseModel, ValidationError

from ..errors import ConfigParseError
from ..models import (
    CacheSection,
    DatabaseSection,
    FieldIssue,
    IdentitySection,
    LoggingSection,
    NetworkSection,
    ServerConfig,
    WorkerSection,
)

logger = logging.getLogger(__name__)


class SectionSpec:
    """Maps the keys of one file object onto one section model."""

    def __init__(self, section: str, model: Type[BaseModel], keys: Dict[str, str], file_key: Optional[str] = None):
        """
        Args:
            section: Attribute name on ServerConfig
            model: Section model class
            keys: File key -> model field
            file_key: Name of the nested JSON object, None for top-level keys
        """
        self.section = section
        self.model = model
        self.file_key = file_key
        self.keys = {key.lower(): (key, field) for key, field in keys.items()}

    def key_path(self, key: str) -> str:
        return f"{self.file_key}.{key}" if self.file_key else key


DATABASE_KEYS = {
    "Path": "path",
    "Config": "config",
    "Dbname": "dbname",
    "Username": "username",
    "Password": "password",
    "MaxIdleConns": "max_idle_conns",
    "MaxOpenConns": "max_open_conns",
    "LogMode": "log_mode",
}

TOP_LEVEL_SECTIONS = [
    SectionSpec("identity", IdentitySection, {
        "Name": "name",
        "Version": "version",
        "Env": "env",
    }),
    SectionSpec("network", NetworkSection, {
        "Host": "host",
        "TCPPort": "port",
        "MaxPacketSize": "max_packet_size",
        "MaxConn": "max_conn",
        "HeartbeatTime": "heartbeat_time",
        "ConnReadTimeout": "conn_read_timeout",
        "ConnWriteTimeout": "conn_write_timeout",
        "DoubleMsgID": "double_msg_id",
    }),
    SectionSpec("worker", WorkerSection, {
        "WorkerPoolSize": "worker_pool_size",
        "MaxWorkerTaskLen": "max_worker_task_len",
        "MaxMsgChanLen": "max_msg_chan_len",
    }),
]

NESTED_SECTIONS = [
    SectionSpec("logging", LoggingSection, {
        "level": "level",
        "format": "format",
        "prefix": "prefix",
        "director": "director",
        "link-name": "link_name",
        "show-line": "show_line",
        "encode-level": "encode_level",
        "stacktrace-key": "stacktrace_key",
        "log-in-console": "log_in_console",
    }, file_key="ZapConfig"),
    SectionSpec("mysql_read", DatabaseSection, DATABASE_KEYS, file_key="MysqlReadConfig"),
    SectionSpec("mysql_write", DatabaseSection, DATABASE_KEYS, file_key="MysqlWriteConfig"),
    SectionSpec("redis", CacheSection, {
        "DB": "db",
        "Addr": "addr",
        "Password": "password",
    }, file_key="RedisConfig"),
]

SECTIONS = TOP_LEVEL_SECTIONS + NESTED_SECTIONS

_TOP_LEVEL_INDEX = {
    lowered: (spec, key, field)
    for spec in TOP_LEVEL_SECTIONS
    for lowered, (key, field) in spec.keys.items()
}
_NESTED_INDEX = {spec.file_key.lower(): spec for spec in NESTED_SECTIONS}


class SectionUpdate:
    """Values found in the document for one section."""

    def __init__(self, spec: SectionSpec):
        self.spec = spec
        self.values: Dict[str, Any] = {}
        self.key_paths: Dict[str, str] = {}

    def set(self, field: str, value: Any, key_path: str) -> None:
        self.values[field] = value
        self.key_paths[field] = key_path


def decode_section(spec: SectionSpec, raw: Mapping[str, Any], update: SectionUpdate) -> List[str]:
    """
    Collect the recognized keys of a nested file object.

    Args:
        spec: Section key table
        raw: The JSON object found under spec.file_key
        update: Receives the recognized values

    Returns:
        Key paths that were not recognized
    """
    ignored = []
    for key, value in raw.items():
        match = spec.keys.get(str(key).lower())
        if match is None:
            ignored.append(spec.key_path(key))
            continue
        _, field = match
        update.set(field, value, spec.key_path(key))
    return ignored


def validate_section(current: BaseModel, update: SectionUpdate) -> Tuple[Optional[BaseModel], List[FieldIssue]]:
    """
    Overlay collected values onto a section and validate the result.

    Args:
        current: Section currently held in the snapshot
        update: Values from the document

    Returns:
        (new section, []) on success, (None, issues) on failure
    """
    if not update.values:
        return current, []

    merged = current.model_dump()
    merged.update(update.values)

    try:
        return update.spec.model.model_validate(merged), []
    except ValidationError as e:
        issues = []
        for error in e.errors():
            field = str(error["loc"][0]) if error["loc"] else ""
            issues.append(FieldIssue(
                key=update.key_paths.get(field, update.spec.key_path(field)),
                message=error["msg"],
                value=repr(error.get("input")),
            ))
        return None, issues


class ConfigMerger:
    """Builds a new snapshot from the current one plus a decoded document."""

    def overlay(self, current: ServerConfig, document: Mapping[str, Any], file_path: str = "<memory>") -> ServerConfig:
        """
        Overlay a document onto the current snapshot.

        Args:
            current: Snapshot the document is applied on top of
            document: Decoded top-level JSON object
            file_path: Name used in error messages

        Returns:
            New ServerConfig; `current` is never modified

        Raises:
            ConfigParseError: Listing every rejected key, if any
        """
        updates = {spec.section: SectionUpdate(spec) for spec in SECTIONS}
        issues: List[FieldIssue] = []
        ignored: List[str] = []

        for key, value in document.items():
            lowered = str(key).lower()

            if lowered in _TOP_LEVEL_INDEX:
                spec, _, field = _TOP_LEVEL_INDEX[lowered]
                updates[spec.section].set(field, value, key)
            elif lowered in _NESTED_INDEX:
                spec = _NESTED_INDEX[lowered]
                if not isinstance(value, dict):
                    issues.append(FieldIssue(
                        key=key,
                        message="Input should be a JSON object",
                        value=repr(value),
                    ))
                    continue
                ignored.extend(decode_section(spec, value, updates[spec.section]))
            else:
                ignored.append(str(key))

        if ignored:
            logger.debug(f"Ignoring unknown configuration keys: {', '.join(ignored)}")

        sections: Dict[str, BaseModel] = {}
        for spec in SECTIONS:
            section, section_issues = validate_section(getattr(current, spec.section), updates[spec.section])
            issues.extend(section_issues)
            if section is not None:
                sections[spec.section] = section

        if issues:
            raise ConfigParseError(file_path, issues)

        return ServerConfig(source=current.source, **sections)


def changed_keys(old: ServerConfig, new: ServerConfig) -> List[str]:
    """
    List the settings that differ between two snapshots.

    Returns:
        Dotted section.field names, e.g. ["network.port"]
    """
    changed = []
    for spec in SECTIONS:
        old_section = getattr(old, spec.section)
        new_section = getattr(new, spec.section)
        if old_section == new_section:
            continue
        for field in type(old_section).model_fields:
            if getattr(old_section, field) != getattr(new_section, field):
                changed.append(f"{spec.section}.{field}")
    return changed
