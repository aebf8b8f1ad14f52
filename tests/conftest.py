"""
Pytest configuration and fixtures for Server Configuration Manager tests.
"""

import json
import os
import sys
import tempfile
from pathlib import Path
from typing import Generator

import pytest

# Add repository root to Python path BEFORE test collection
package_root = Path(__file__).parent.parent
if str(package_root) not in sys.path:
    sys.path.insert(0, str(package_root))

from server_config_manager.config import ConfigStore, ReloadManager, build_defaults  # noqa: E402


@pytest.fixture(autouse=True)
def clear_config_path_env(monkeypatch):
    """Keep an operator's $SERVER_CONFIG_PATH out of the tests."""
    monkeypatch.delenv("SERVER_CONFIG_PATH", raising=False)


@pytest.fixture
def temp_config_dir() -> Generator[Path, None, None]:
    """Create temporary working directory with a conf/ subdirectory."""
    with tempfile.TemporaryDirectory() as tmpdir:
        config_dir = Path(tmpdir)
        (config_dir / "conf").mkdir()
        yield config_dir


@pytest.fixture
def config_path(temp_config_dir) -> Path:
    """Configuration file path (not created)."""
    return temp_config_dir / "conf" / "zinx.json"


@pytest.fixture
def write_config():
    """Return a helper that writes a config document.

    Dicts are serialized as JSON, strings are written verbatim. With
    atomic=True the content is written to a temp file and renamed into
    place, the way editors and deployment tools do it.
    """
    def _write(path: Path, data, atomic: bool = False) -> None:
        content = data if isinstance(data, str) else json.dumps(data)
        if atomic:
            tmp_path = path.with_name(f".{path.name}.tmp")
            tmp_path.write_text(content)
            os.replace(tmp_path, path)
        else:
            path.write_text(content)

    return _write


@pytest.fixture
def publish_configmap():
    """Return a helper that publishes content the way a mounted ConfigMap does.

    The file is a symlink zinx.json -> ..data/zinx.json. Each call writes a
    new version directory and renames a fresh ..data link over the old one.
    """
    versions = []

    def _publish(path: Path, data) -> None:
        conf_dir = path.parent
        content = data if isinstance(data, str) else json.dumps(data)
        version = f"..2024_v{len(versions) + 1}"
        versions.append(version)
        (conf_dir / version).mkdir()
        (conf_dir / version / path.name).write_text(content)
        data_tmp = conf_dir / "..data_tmp"
        os.symlink(version, data_tmp)
        os.rename(data_tmp, conf_dir / "..data")
        if not path.is_symlink():
            os.symlink(os.path.join("..data", path.name), path)

    return _publish


@pytest.fixture
def store(config_path) -> ConfigStore:
    """Store holding the defaults for config_path."""
    return ConfigStore(build_defaults(config_path))


@pytest.fixture
def reload_manager(store) -> ReloadManager:
    """Reload manager bound to the store fixture."""
    return ReloadManager(store)


@pytest.fixture
def full_config():
    """A configuration document setting every recognized key."""
    return {
        "Name": "GameGateway",
        "Version": "V1.2",
        "Env": "develop",
        "Host": "127.0.0.1",
        "TCPPort": 9100,
        "MaxPacketSize": 8192,
        "MaxConn": 5000,
        "HeartbeatTime": 30,
        "ConnReadTimeout": 0,
        "ConnWriteTimeout": 15,
        "DoubleMsgID": 2,
        "WorkerPoolSize": 32,
        "MaxWorkerTaskLen": 2048,
        "MaxMsgChanLen": 512,
        "ZapConfig": {
            "level": "debug",
            "format": "json",
            "prefix": "[gateway]",
            "director": "/var/log/gateway",
            "link-name": "current",
            "show-line": False,
            "encode-level": "CapitalLevelEncoder",
            "stacktrace-key": "trace",
            "log-in-console": False
        },
        "MysqlReadConfig": {
            "Path": "db-replica:3306",
            "Config": "charset=utf8mb4&parseTime=True",
            "Dbname": "game",
            "Username": "reader",
            "Password": "r-secret",
            "MaxIdleConns": 5,
            "MaxOpenConns": 50,
            "LogMode": "error"
        },
        "MysqlWriteConfig": {
            "Path": "db-primary:3306",
            "Config": "charset=utf8mb4",
            "Dbname": "game",
            "Username": "writer",
            "Password": "w-secret",
            "MaxIdleConns": 2,
            "MaxOpenConns": 20,
            "LogMode": "warn"
        },
        "RedisConfig": {
            "DB": 3,
            "Addr": "cache:6379",
            "Password": "c-secret"
        }
    }
