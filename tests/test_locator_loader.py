"""
Tests for locating and decoding the configuration file.
"""

import io
import os

import pytest

from server_config_manager.config import locator
from server_config_manager.config.loader import ConfigLoader, parse_document
from server_config_manager.config.locator import locate_config_file
from server_config_manager.errors import ConfigParseError, ErrorCode
from server_config_manager.models import FileStatus


class TestLocateConfigFile:
    """Test the file locator."""

    def test_existing_file(self, config_path, write_config):
        write_config(config_path, {})

        location = locate_config_file(config_path)

        assert location.status == FileStatus.EXISTS
        assert location.detail is None

    def test_missing_file(self, config_path):
        assert locate_config_file(config_path).status == FileStatus.NOT_EXISTS

    def test_missing_parent_directory(self, temp_config_dir):
        path = temp_config_dir / "missing" / "zinx.json"

        assert locate_config_file(path).status == FileStatus.NOT_EXISTS

    def test_parent_is_a_file(self, temp_config_dir):
        blocker = temp_config_dir / "blocker"
        blocker.write_text("")

        assert locate_config_file(blocker / "zinx.json").status == FileStatus.NOT_EXISTS

    def test_directory_is_access_error(self, config_path):
        config_path.mkdir()

        location = locate_config_file(config_path)

        assert location.status == FileStatus.ACCESS_ERROR
        assert "regular file" in location.detail

    def test_permission_denied_is_access_error(self, config_path, monkeypatch):
        real_stat = os.stat

        def denying_stat(path, *args, **kwargs):
            if str(path) == str(config_path):
                raise PermissionError(13, "Permission denied", str(path))
            return real_stat(path, *args, **kwargs)

        monkeypatch.setattr(locator.os, "stat", denying_stat)

        location = locate_config_file(config_path)

        assert location.status == FileStatus.ACCESS_ERROR
        assert "Permission denied" in location.detail


class TestParseDocument:
    """Test JSON decoding."""

    def test_object_document(self):
        assert parse_document(b'{"TCPPort": 9100}') == {"TCPPort": 9100}

    def test_accepts_text_and_file_handles(self):
        assert parse_document('{"Host": "::"}') == {"Host": "::"}
        assert parse_document(io.BytesIO(b'{"MaxConn": 1}')) == {"MaxConn": 1}

    def test_invalid_json_is_syntax_error(self):
        with pytest.raises(ConfigParseError) as exc_info:
            parse_document(b'{"TCPPort": 9100,', "conf/zinx.json")

        error = exc_info.value
        assert error.code == ErrorCode.SYNTAX_ERROR
        assert error.file_path == "conf/zinx.json"
        assert "conf/zinx.json" in error.message
        assert error.issues[0].key == "<document>"

    def test_empty_file_is_syntax_error(self):
        with pytest.raises(ConfigParseError):
            parse_document(b"")

    def test_non_object_document(self):
        with pytest.raises(ConfigParseError) as exc_info:
            parse_document(b"[1, 2, 3]")

        assert "JSON object" in exc_info.value.issues[0].message
        assert exc_info.value.issues[0].value == "list"

    def test_invalid_utf8(self):
        with pytest.raises(ConfigParseError) as exc_info:
            parse_document(b'{"Name": "\xff\xfe"}')

        assert exc_info.value.code == ErrorCode.SYNTAX_ERROR

    def test_deep_nesting_is_syntax_error(self):
        nested = b"[" * 100000 + b"]" * 100000

        with pytest.raises(ConfigParseError) as exc_info:
            parse_document(nested, "conf/zinx.json")

        error = exc_info.value
        assert error.code == ErrorCode.SYNTAX_ERROR
        assert "nested too deeply" in error.issues[0].message
        assert isinstance(error.__cause__, RecursionError)

    def test_error_to_dict(self):
        with pytest.raises(ConfigParseError) as exc_info:
            parse_document(b"{", "zinx.json")

        data = exc_info.value.to_dict()

        assert data["code"] == ErrorCode.SYNTAX_ERROR.value
        assert data["context"]["file_path"] == "zinx.json"
        assert data["context"]["issues"][0]["key"] == "<document>"


class TestConfigLoader:
    """Test reading the configuration file from disk."""

    def test_load_document(self, config_path, write_config, full_config):
        write_config(config_path, full_config)

        assert ConfigLoader(config_path).load_document() == full_config

    def test_missing_file_raises(self, config_path):
        with pytest.raises(FileNotFoundError):
            ConfigLoader(config_path).load_document()
