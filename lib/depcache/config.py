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
Contains default config and settings.
"""

import json
import os
from dataclasses import dataclass, field, fields
from typing import List, Optional

from depcache.errors import ConfigError

# default environment settings
HOME = os.getenv("HOME", os.path.expanduser("~"))
CACHE_DIR = os.getenv("DEPCACHE_DIR", os.path.join(HOME, ".package_cache"))

# remote cache settings (empty host disables the remote tier)
REDIS_HOST = os.getenv("DEPCACHE_REDIS_HOST", "")
REDIS_PORT = 6379
REDIS_DB = 0
REDIS_PASSWORD = os.getenv("DEPCACHE_REDIS_PASSWORD") or None
REDIS_PREFIX = os.getenv("DEPCACHE_REDIS_PREFIX", "depcache")
REDIS_TTL = 7 * 24 * 3600
REDIS_TIMEOUT = 30

# integer settings read from the environment by load_settings
ENV_SETTINGS = {
    "redis_port": "DEPCACHE_REDIS_PORT",
    "redis_db": "DEPCACHE_REDIS_DB",
    "redis_ttl": "DEPCACHE_REDIS_TTL",
}

# values shorter than this cannot be a valid archive
MIN_ARCHIVE_SIZE = 100

# manifests in order of preference, lockfiles first
MANIFESTS = [
    "npm-shrinkwrap.json",
    "package-lock.json",
    "yarn.lock",
    "pnpm-lock.yaml",
    "package.json",
]
HASH_BLOCK_SIZE = 65536

# dependency tree settings
TREE_DIR = "node_modules"
ARCHIVE_EXT = ".tgz"
INSTALL_COMMAND = ["npm", "install"]
RUNTIME_COMMAND = [
    "node",
    "-p",
    "process.version + '-' + process.platform + '-' + process.arch",
]

# config file settings
CONFIG_FILE = ".depcache.json"

# logging settings
LOG_NAME = "depcache"
LOG_DIR = os.getenv("LOG_DIR", os.path.expanduser("~/log/depcache"))
LOG_LEVEL_DEFAULT = "INFO"
LOG_LEVEL = os.getenv("LOG_LEVEL", LOG_LEVEL_DEFAULT)
LOG_MAX_BYTES = 1_000_000
LOG_BACKUP_COUNT = 5


@dataclass
class Settings:
    """Resolved settings for a single run."""

    cache_dir: str = CACHE_DIR
    redis_host: str = REDIS_HOST
    redis_port: int = REDIS_PORT
    redis_db: int = REDIS_DB
    redis_password: Optional[str] = REDIS_PASSWORD
    redis_prefix: str = REDIS_PREFIX
    redis_ttl: int = REDIS_TTL
    min_archive_size: int = MIN_ARCHIVE_SIZE
    manifests: List[str] = field(default_factory=lambda: list(MANIFESTS))
    install_command: List[str] = field(default_factory=lambda: list(INSTALL_COMMAND))
    runtime_command: List[str] = field(default_factory=lambda: list(RUNTIME_COMMAND))
    tree_dir: str = TREE_DIR
    workdir: str = "."

    @property
    def remote_enabled(self) -> bool:
        """True if a remote host is configured."""
        return bool(self.redis_host)


def _coerce(name: str, value, default):
    """Coerces a config value to the type of its default.

    :param name: setting name, used in error messages.
    :param value: raw value from a config file or command line.
    :param default: default value of the setting.
    :raises ConfigError: if the value cannot be converted.
    :return: converted value.
    """
    if isinstance(default, list):
        if isinstance(value, str):
            return value.split()
        if isinstance(value, list) and all(isinstance(v, str) for v in value):
            return list(value)
        raise ConfigError(f"'{name}' must be a string or list of strings")
    if isinstance(default, bool):
        return bool(value)
    if isinstance(default, int):
        try:
            return int(value)
        except (TypeError, ValueError):
            raise ConfigError(f"'{name}' must be an integer, got {value!r}")
    if value is None:
        return None
    return str(value)


def find_config_file(workdir: str = ".") -> Optional[str]:
    """Returns the first config file found in the working directory or the
    user's home directory.

    :param workdir: project directory.
    :return: path to config file or None.
    """
    for folder in (workdir, HOME):
        path = os.path.join(folder, CONFIG_FILE)
        if os.path.isfile(path):
            return path
    return None


def read_config_file(path: str) -> dict:
    """Reads a JSON config file.

    :param path: path to the config file.
    :raises ConfigError: if the file cannot be read or parsed.
    :return: dictionary of settings.
    """
    try:
        with open(path, "r") as json_file:
            data = json.load(json_file)
    except (OSError, ValueError) as e:
        raise ConfigError(f"Failed to read config file {path}: {e}")
    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a JSON object")
    return data


def load_settings(
    path: Optional[str] = None, workdir: str = ".", **overrides
) -> Settings:
    """Resolves settings from defaults, the environment, a config file and
    explicit overrides, in that order. Override values of None are ignored.

    :param path: optional explicit config file path.
    :param workdir: project directory, also searched for a config file.
    :param overrides: setting values that take precedence.
    :raises ConfigError: on unknown keys or invalid values.
    :return: Settings object.
    """
    settings = Settings(workdir=workdir)
    defaults = {f.name: getattr(settings, f.name) for f in fields(Settings)}

    values = {
        name: os.environ[var] for name, var in ENV_SETTINGS.items() if os.getenv(var)
    }
    path = path or find_config_file(workdir)
    if path:
        values.update(read_config_file(path))
    values.update({k: v for k, v in overrides.items() if v is not None})

    unknown = set(values) - set(defaults)
    if unknown:
        raise ConfigError(f"Unknown settings: {', '.join(sorted(unknown))}")

    for name, value in values.items():
        setattr(settings, name, _coerce(name, value, defaults[name]))

    # EXPIRE with a ttl of 0 or less deletes the key
    if settings.redis_ttl <= 0:
        raise ConfigError(f"'redis_ttl' must be positive, got {settings.redis_ttl}")

    return settings
