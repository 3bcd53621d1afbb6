#!/usr/bin/env python3
"""
Tests for environment based settings
"""

import os

import pytest

from ipfs_launchpad.config import DEFAULT_API_URL, load_settings, normalize_api_url, parse_timeout

VARIABLES = ("IPFS_API_URL", "IPFS_TIMEOUT", "IPFS_KEY", "LAUNCHPAD_OUTPUT", "LAUNCHPAD_LOG_DIR")


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    """Isolated os.environ without launchpad variables, cwd without a .env"""
    environ = {name: value for name, value in os.environ.items() if name not in VARIABLES}
    monkeypatch.setattr(os, "environ", environ)
    monkeypatch.chdir(tmp_path)
    return environ


class TestLoadSettings:
    """Test load_settings()"""

    def test_defaults(self, clean_env, tmp_path):
        settings = load_settings(str(tmp_path / "missing.env"))

        assert settings.api_url == DEFAULT_API_URL
        assert settings.timeout == 30.0
        assert settings.key == ""
        assert settings.output == "launchpad-download.txt"
        assert settings.log_dir == "logs"

    def test_environment_variables(self, clean_env, tmp_path):
        clean_env.update({
            "IPFS_API_URL": "http://node:5001/",
            "IPFS_TIMEOUT": "0",
            "IPFS_KEY": "k51qzi5uqu5key",
            "LAUNCHPAD_OUTPUT": "out.txt",
        })

        settings = load_settings(str(tmp_path / "missing.env"))

        assert settings.api_url == "http://node:5001"
        assert settings.timeout is None
        assert settings.key == "k51qzi5uqu5key"
        assert settings.output == "out.txt"

    def test_bare_host_port(self, clean_env, tmp_path):
        clean_env["IPFS_API_URL"] = "localhost:5001"

        settings = load_settings(str(tmp_path / "missing.env"))

        assert settings.api_url == "http://localhost:5001"

    def test_env_file(self, clean_env, tmp_path):
        env_file = tmp_path / ".env"
        env_file.write_text("IPFS_API_URL=http://from-file:5001\nIPFS_KEY=filekey\n")
        clean_env["IPFS_KEY"] = "envkey"

        settings = load_settings(str(env_file))

        assert settings.api_url == "http://from-file:5001"
        assert settings.key == "envkey"

    def test_invalid_timeout(self, clean_env, tmp_path):
        clean_env["IPFS_TIMEOUT"] = "soon"
        with pytest.raises(ValueError, match="IPFS_TIMEOUT"):
            load_settings(str(tmp_path / "missing.env"))


def test_parse_timeout():
    assert parse_timeout("12.5") == 12.5
    assert parse_timeout("0") is None
    assert parse_timeout("-1") is None


@pytest.mark.parametrize(
    "address, expected",
    [
        ("localhost:5001", "http://localhost:5001"),
        ("http://localhost:5001/", "http://localhost:5001"),
        ("/ip4/127.0.0.1/tcp/5001", "http://127.0.0.1:5001"),
        ("/ip6/::1/tcp/5001", "http://[::1]:5001"),
        ("/dns4/node.local/tcp/5001/https", "https://node.local:5001"),
    ],
)
def test_normalize_api_url(address, expected):
    assert normalize_api_url(address) == expected
