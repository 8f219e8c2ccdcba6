#!/usr/bin/env python
#
# Copyright (c) 2024-2025, Ryan Galloway (ryan@rsgalloway.com)
#
# Redistribution and use in source and binary forms, with or without
# modification, are permitted provided that the following conditions are met:
#
#  - Redistributions of source code must retain the above copyright notice,
#    this list of conditions and the following disclaimer.
#
#  - Redistributions in binary form must reproduce the above copyright notice,
#    this list of conditions and the following disclaimer in the documentation
#    and/or other materials provided with the distribution.
#
#  - Neither the name of the software nor the names of its contributors
#    may be used to endorse or promote products derived from this software
#    without specific prior written permission.
#
# THIS SOFTWARE IS PROVIDED BY THE COPYRIGHT HOLDERS AND CONTRIBUTORS "AS IS"
# AND ANY EXPRESS OR IMPLIED WARRANTIES, INCLUDING, BUT NOT LIMITED TO, THE
# IMPLIED WARRANTIES OF MERCHANTABILITY AND FITNESS FOR A PARTICULAR PURPOSE
# ARE DISCLAIMED. IN NO EVENT SHALL THE COPYRIGHT HOLDER OR CONTRIBUTORS BE
# LIABLE FOR ANY DIRECT, INDIRECT, INCIDENTAL, SPECIAL, EXEMPLARY, OR
# CONSEQUENTIAL DAMAGES (INCLUDING, BUT NOT LIMITED TO, PROCUREMENT OF
# SUBSTITUTE GOODS OR SERVICES; LOSS OF USE, DATA, OR PROFITS; OR BUSINESS
# INTERRUPTION) HOWEVER CAUSED AND ON ANY THEORY OF LIABILITY, WHETHER IN
# CONTRACT, STRICT LIABILITY, OR TORT (INCLUDING NEGLIGENCE OR OTHERWISE)
# ARISING IN ANY WAY OUT OF THE USE OF THIS SOFTWARE, EVEN IF ADVISED OF THE
# POSSIBILITY OF SUCH DAMAGE.
#

__doc__ = """
Contains tests for the cli module.
"""

import os
import subprocess

import pytest

from depcache import cli, config
from depcache.errors import ConfigError, InstallError, PackError
from depcache.orchestrator import CacheInstaller, Outcome


@pytest.fixture(autouse=True)
def isolate(tmp_path, monkeypatch, mocker):
    """Keeps log files and the user's config out of the tests."""
    monkeypatch.setattr(config, "HOME", str(tmp_path / "home"))
    for var in config.ENV_SETTINGS.values():
        monkeypatch.delenv(var, raising=False)
    mocker.patch("depcache.cli.setup_logging")


@pytest.fixture
def project(tmp_path):
    path = tmp_path / "project"
    path.mkdir()
    (path / "package.json").write_text("{}")
    return path


def test_not_a_directory(tmp_path):
    assert cli.main([str(tmp_path / "missing")]) == 1


def test_force_and_cache_existing_exclusive(project):
    assert cli.main([str(project), "--force", "--cache-existing"]) == 1


def test_run_passes_flags(project, tmp_path, mocker):
    run = mocker.patch.object(CacheInstaller, "run", return_value=Outcome.INSTALLED)
    rc = cli.main([str(project), "-f", "--cache-dir", str(tmp_path / "cache")])
    assert rc == 0
    run.assert_called_once_with(force=True, adopt_existing=False)


def test_cache_existing_flag(project, mocker):
    run = mocker.patch.object(CacheInstaller, "run", return_value=Outcome.ADOPTED)
    assert cli.main([str(project), "-e"]) == 0
    run.assert_called_once_with(force=False, adopt_existing=True)


def test_settings_from_flags(project, tmp_path, mocker):
    load = mocker.spy(cli, "load_settings")
    mocker.patch.object(CacheInstaller, "run", return_value=Outcome.INSTALLED)
    cli.main(
        [
            str(project),
            "--cache-dir",
            str(tmp_path / "cache"),
            "--redis-host",
            "cache.local",
            "--redis-port",
            "6380",
            "--ttl",
            "60",
            "--prefix",
            "team",
            "--install-cmd",
            "npm ci",
        ]
    )
    settings = load.spy_return
    assert settings.cache_dir == str(tmp_path / "cache")
    assert settings.redis_host == "cache.local"
    assert settings.redis_port == 6380
    assert settings.redis_ttl == 60
    assert settings.redis_prefix == "team"
    assert settings.install_command == ["npm", "ci"]
    assert settings.workdir == str(project)


def test_errors_map_to_exit_codes(project, mocker):
    mocker.patch.object(CacheInstaller, "run", side_effect=InstallError("boom"))
    assert cli.main([str(project)]) == InstallError.exit_code
    mocker.patch.object(CacheInstaller, "run", side_effect=PackError("full"))
    assert cli.main([str(project)]) == PackError.exit_code


def test_zero_ttl_is_config_error(project, mocker):
    run = mocker.patch.object(CacheInstaller, "run")
    assert cli.main([str(project), "--ttl", "0"]) == ConfigError.exit_code
    run.assert_not_called()


def test_bad_env_port_is_config_error(project, monkeypatch):
    monkeypatch.setenv("DEPCACHE_REDIS_PORT", "not-a-port")
    assert cli.main([str(project), "--key"]) == ConfigError.exit_code


def test_missing_manifest_exit_code(tmp_path):
    assert cli.main([str(tmp_path), "--key"]) == 2


def test_key_prints_key(project, capsys, mocker):
    mocker.patch(
        "depcache.runtime.subprocess.run",
        return_value=subprocess.CompletedProcess([], 0, "v18.19.0-linux-x64\n", ""),
    )
    assert cli.main([str(project), "--key"]) == 0
    out = capsys.readouterr().out.splitlines()
    assert out[0].startswith("v18.19.0-linux-x64-")
    assert out[1] == os.path.join(str(project), "package.json")


def test_list_entries(project, tmp_path, capsys):
    cache = tmp_path / "cache"
    cache.mkdir()
    (cache / "v18-linux-x64-abc123.tgz").write_bytes(b"x" * 10)
    assert cli.main([str(project), "--list", "--cache-dir", str(cache)]) == 0
    assert "v18-linux-x64-abc123" in capsys.readouterr().out


def test_clean_requires_confirmation(project, tmp_path, mocker):
    cache = tmp_path / "a" / "cache"
    cache.mkdir(parents=True)
    mocker.patch("depcache.util.yesNo", return_value=False)
    assert cli.main([str(project), "--clean", "--cache-dir", str(cache)]) == 1
    assert cache.exists()


def test_clean_yes(project, tmp_path):
    cache = tmp_path / "a" / "cache"
    cache.mkdir(parents=True)
    assert cli.main([str(project), "--clean", "-y", "--cache-dir", str(cache)]) == 0
    assert not cache.exists()
