"""
Built-in configuration values used before any file is read.
"""

import os
from pathlib import Path
from typing import Optional

from ..models import (
    CacheSection,
    DatabaseSection,
    IdentitySection,
    LoggingSection,
    NetworkSection,
    ServerConfig,
    WorkerSection,
)

CONFIG_PATH_ENV = "SERVER_CONFIG_PATH"
DEFAULT_CONFIG_SUBPATH = Path("conf") / "zinx.json"


def resolve_config_path(config_path: Optional[Path] = None) -> Path:
    """
    Resolve the configuration file location.

    Precedence: explicit argument, then $SERVER_CONFIG_PATH, then
    <cwd>/conf/zinx.json.

    Args:
        config_path: Explicit override

    Returns:
        Absolute path to the configuration file
    """
    if config_path is None:
        env_path = os.environ.get(CONFIG_PATH_ENV)
        if env_path:
            config_path = Path(env_path)

    if config_path is None:
        try:
            cwd = Path.cwd()
        except OSError:
            cwd = Path(".")
        return cwd / DEFAULT_CONFIG_SUBPATH

    return Path(config_path).expanduser().absolute()


def _empty_database() -> DatabaseSection:
    return DatabaseSection(
        path="",
        config="",
        dbname="",
        username="",
        password="",
        max_idle_conns=0,
        max_open_conns=0,
        log_mode="",
    )


def build_defaults(config_path: Optional[Path] = None) -> ServerConfig:
    """
    Build the baseline configuration aggregate.

    Args:
        config_path: Configuration file location (see resolve_config_path)

    Returns:
        Fully populated ServerConfig
    """
    return ServerConfig(
        identity=IdentitySection(
            name="ZinxServerApp",
            version="V0.11",
            env="production",
        ),
        network=NetworkSection(
            host="0.0.0.0",
            port=8999,
            max_packet_size=4096,
            max_conn=12000,
            heartbeat_time=60,
            conn_read_timeout=60,
            conn_write_timeout=60,
            double_msg_id=1,
        ),
        worker=WorkerSection(
            worker_pool_size=10,
            max_worker_task_len=1024,
            max_msg_chan_len=1024,
        ),
        logging=LoggingSection(
            level="info",
            format="console",
            prefix="[zinx-websocket]",
            director="log",
            link_name="latest_log",
            show_line=True,
            encode_level="LowercaseColorLevelEncoder",
            stacktrace_key="stacktrace",
            log_in_console=True,
        ),
        mysql_read=_empty_database(),
        mysql_write=_empty_database(),
        redis=CacheSection(db=0, addr="", password=""),
        source=resolve_config_path(config_path),
    )
