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
Contains manifest hashing and cache key derivation.

A cache key combines the runtime platform id with the content hash of the
most authoritative manifest present in the project:

    v18.19.0-linux-x64-3b5d5c3712955042212316173ccf37be...
"""

import hashlib
import os
from dataclasses import dataclass
from typing import Callable, List, Tuple

from depcache import config
from depcache.errors import NoManifestFound, KeyDerivationError
from depcache.logger import log


@dataclass(frozen=True)
class ManifestHash:
    """The manifest chosen for hashing and its content digest."""

    name: str
    path: str
    digest: str


@dataclass(frozen=True)
class CacheKey:
    """Identifies one cache entry in every tier."""

    platform_id: str
    content_hash: str

    def __str__(self) -> str:
        return f"{self.platform_id}-{self.content_hash}"

    @property
    def archive_name(self) -> str:
        """Name of the local archive file for this key."""
        return f"{self}{config.ARCHIVE_EXT}"


def hash_file(path: str, block_size: int = config.HASH_BLOCK_SIZE) -> str:
    """Returns the sha256 hex digest of a file's contents.

    :param path: path to file.
    :param block_size: read size in bytes.
    :raises FileNotFoundError: if the file does not exist.
    :return: hex digest.
    """
    digest = hashlib.sha256()
    with open(path, "rb") as f:
        for block in iter(lambda: f.read(block_size), b""):
            digest.update(block)
    return digest.hexdigest()


def select_manifest(candidates: List[str], directory: str = ".") -> str:
    """Returns the first candidate that exists as a regular file.

    :param candidates: manifest file names, most authoritative first.
    :param directory: project directory.
    :raises NoManifestFound: if no candidate exists.
    :return: name of the chosen manifest.
    """
    for name in candidates:
        if os.path.isfile(os.path.join(directory, name)):
            return name
    raise NoManifestFound(
        "No manifest found in %s (looked for %s)"
        % (os.path.abspath(directory), ", ".join(candidates))
    )


def hash_manifest(
    candidates: List[str],
    directory: str = ".",
    hasher: Callable[[str], str] = hash_file,
) -> ManifestHash:
    """Hashes the most authoritative manifest in a directory.

    :param candidates: manifest file names, most authoritative first.
    :param directory: project directory.
    :param hasher: content hash function.
    :raises KeyDerivationError: if no manifest exists or hashing fails.
    :return: ManifestHash.
    """
    name = select_manifest(candidates, directory)
    path = os.path.join(directory, name)
    try:
        digest = hasher(path)
    except OSError as e:
        raise KeyDerivationError(f"Cannot hash {path}: {e}")
    log.debug("Hashed %s: %s", name, digest)
    return ManifestHash(name, path, digest)


def derive_key(settings, runtime, hasher=hash_file) -> Tuple[CacheKey, ManifestHash]:
    """Derives the cache key for a project.

    :param settings: Settings object.
    :param runtime: object with a platform_id() method.
    :param hasher: content hash function.
    :raises KeyDerivationError: if the manifest or platform cannot be read.
    :return: tuple of (CacheKey, ManifestHash).
    """
    manifest = hash_manifest(settings.manifests, settings.workdir, hasher)
    platform_id = runtime.platform_id()
    return CacheKey(platform_id, manifest.digest), manifest
