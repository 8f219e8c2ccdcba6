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
Contains the install orchestrator, which decides whether to restore the
dependency tree from cache or run a real install.

    INIT -> KEY_DERIVED -> ADOPT_EXISTING -> DONE
                        -> NORMAL_INSTALL -> DONE
    (any fatal error)   -> FATAL
"""

import enum
import os
from typing import Optional

from depcache import util
from depcache.errors import DepCacheError, InstallError, PackError, TransportError
from depcache.install import CommandInstaller
from depcache.keys import CacheKey, ManifestHash, derive_key, hash_file
from depcache.logger import log
from depcache.remote import RemoteStore
from depcache.runtime import RuntimeIdentifier
from depcache.snapshot import Snapshot, TarArchiver
from depcache.store import LocalStore


class State(enum.Enum):
    INIT = "init"
    KEY_DERIVED = "key_derived"
    ADOPT_EXISTING = "adopt_existing"
    NORMAL_INSTALL = "normal_install"
    DONE = "done"
    FATAL = "fatal"


class Outcome(enum.Enum):
    """How the dependency tree was obtained."""

    ADOPTED = "adopted"
    HIT_LOCAL = "hit_local"
    HIT_REMOTE = "hit_remote"
    INSTALLED = "installed"


class CacheInstaller(object):
    """Restores a project's dependency tree from cache, or installs it and
    populates the cache."""

    def __init__(
        self,
        settings,
        local: LocalStore,
        snapshot: Snapshot,
        installer,
        runtime,
        remote: Optional[RemoteStore] = None,
        hasher=hash_file,
    ):
        self.settings = settings
        self.local = local
        self.snapshot = snapshot
        self.installer = installer
        self.runtime = runtime
        self.remote = remote
        self.hasher = hasher
        self.state = State.INIT
        self.key: Optional[CacheKey] = None
        self.manifest: Optional[ManifestHash] = None

    @classmethod
    def from_settings(cls, settings) -> "CacheInstaller":
        """Creates a CacheInstaller wired to the default tar archiver, install
        command, runtime identifier and (if configured) redis store."""
        archiver = TarArchiver()
        return cls(
            settings,
            local=LocalStore(settings.cache_dir, archiver),
            snapshot=Snapshot(settings.workdir, settings.tree_dir, archiver),
            installer=CommandInstaller(settings.install_command, settings.workdir),
            runtime=RuntimeIdentifier(settings.runtime_command, settings.workdir),
            remote=RemoteStore.from_settings(settings),
        )

    def derive_key(self) -> CacheKey:
        """Derives and remembers the cache key for the project.

        :raises KeyDerivationError: if no manifest or platform id is available.
        :return: CacheKey.
        """
        self.key, self.manifest = derive_key(self.settings, self.runtime, self.hasher)
        self.state = State.KEY_DERIVED
        log.info("Cache key: %s (from %s)", self.key, self.manifest.name)
        return self.key

    def run(self, force: bool = False, adopt_existing: bool = False) -> Outcome:
        """Runs one install.

        :param force: skip cache lookup, always install and refresh the cache.
        :param adopt_existing: cache the dependency tree already on disk
            without installing anything.
        :raises DepCacheError: on any fatal error; no partial success is
            reported as success.
        :return: Outcome.
        """
        try:
            key = self.derive_key()
            if adopt_existing:
                self.state = State.ADOPT_EXISTING
                outcome = self._adopt_existing(key)
            else:
                self.state = State.NORMAL_INSTALL
                outcome = self._normal_install(key, force)
        except DepCacheError as e:
            log.debug("Aborted in state %s: %s", self.state.name, e)
            self.state = State.FATAL
            raise

        self.state = State.DONE
        return outcome

    def _adopt_existing(self, key: CacheKey) -> Outcome:
        """Caches the tree currently on disk in every tier."""
        if not self.snapshot.exists():
            raise PackError(f"Nothing to cache: {self.snapshot.tree_path} not found")

        path = self.local.put(key, self.snapshot.tree_path)
        log.info("Cached existing %s as %s", self.snapshot.tree_dir, path)
        self._store_remote(key, path)
        return Outcome.ADOPTED

    def _normal_install(self, key: CacheKey, force: bool) -> Outcome:
        """Restores from cache on a hit, otherwise installs and caches."""
        # installs always start from an empty tree
        self.snapshot.clear()

        if not force:
            outcome = self._restore(key)
            if outcome is not None:
                return outcome

        status = self.installer.install()
        if status != 0:
            raise InstallError(f"Install failed with exit status {status}")

        # clean slate before write on a forced refresh
        if force and self.local.remove(key):
            log.info("Removed stale cache entry %s", self.local.path_for(key))

        path = self.local.put(key, self.snapshot.tree_path)
        log.info("Cached %s as %s", self.snapshot.tree_dir, path)
        self._store_remote(key, path)
        return Outcome.INSTALLED

    def _restore(self, key: CacheKey) -> Optional[Outcome]:
        """Looks up key in the local tier, then the remote tier, and unpacks
        the first entry found.

        :raises CorruptArchive: if an entry is found but cannot be unpacked.
        :return: Outcome on a hit, None on a miss.
        """
        outcome = Outcome.HIT_LOCAL
        path = self.local.get(key)

        if path is None and self.remote is not None:
            data = self._fetch_remote(key)
            if data is not None:
                path = self.local.write(key, data)
                outcome = Outcome.HIT_REMOTE
                log.info("Fetched %s from %r", key, self.remote)

        if path is None:
            log.info("Cache miss for %s", key)
            return None

        try:
            self.snapshot.unpack(path)
        except FileNotFoundError:
            # removed by a concurrent run since the lookup
            log.warning("Cache entry %s disappeared, installing instead", path)
            return None
        log.info("Restored %s from %s", self.snapshot.tree_dir, path)
        return outcome

    def _fetch_remote(self, key: CacheKey) -> Optional[bytes]:
        """Reads key from the remote tier. Transport errors count as a miss."""
        try:
            return self.remote.get(key)
        except TransportError as e:
            log.warning("Remote cache unavailable, continuing without it: %s", e)
            return None

    def _store_remote(self, key: CacheKey, path: str) -> None:
        """Uploads the local archive for key to the remote tier, if configured.

        :raises TransportError: if the upload fails.
        """
        if self.remote is None:
            return
        try:
            with open(path, "rb") as f:
                data = f.read()
        except OSError as e:
            raise PackError(f"Cannot read {path}: {e}")
        self.remote.put(key, data)
        log.info(
            "Uploaded %s (%s) to %r",
            os.path.basename(path),
            util.format_size(len(data)),
            self.remote,
        )
