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
Contains the local cache store: a directory holding one archive per key.

    ~/.package_cache/
        v18.19.0-linux-x64-3b5d5c37....tgz
        v20.11.1-darwin-arm64-9f2a01c4....tgz

Concurrent runs against the same key are not locked against each other; the
last writer wins.
"""

import os
import shutil
from typing import List, Optional, Tuple

from depcache import config, util
from depcache.errors import PackError, RemoveError
from depcache.logger import log
from depcache.snapshot import Snapshot, TarArchiver


class LocalStore(object):
    """Archive files keyed by cache key under a root directory."""

    def __init__(self, root: str = config.CACHE_DIR, archiver=None):
        self.root = root
        self.archiver = archiver or TarArchiver()

    def path_for(self, key) -> str:
        """Returns the archive path for a key."""
        return os.path.join(self.root, key.archive_name)

    def exists(self, key) -> bool:
        """True if an archive exists for key."""
        return os.path.isfile(self.path_for(key))

    def get(self, key) -> Optional[str]:
        """Returns the archive path for key, or None if there is none."""
        path = self.path_for(key)
        return path if os.path.isfile(path) else None

    def put(self, key, source_directory: str) -> str:
        """Archives source_directory as the entry for key.

        :param key: cache key.
        :param source_directory: directory to archive.
        :raises PackError: if the archive cannot be written.
        :return: archive path.
        """
        path = self.path_for(key)
        source_directory = os.path.abspath(source_directory)
        snapshot = Snapshot(
            os.path.dirname(source_directory),
            os.path.basename(source_directory),
            self.archiver,
        )
        snapshot.pack(path)
        log.debug("Stored %s (%s)", path, util.format_size(os.path.getsize(path)))
        return path

    def write(self, key, data: bytes) -> str:
        """Stores raw archive bytes as the entry for key.

        :param key: cache key.
        :param data: archive contents.
        :raises PackError: if the file cannot be written.
        :return: archive path.
        """
        path = self.path_for(key)
        tmp_path = None
        try:
            tmp_path = util.temp_path_for(path)
            with open(tmp_path, "wb") as f:
                f.write(data)
            util.atomic_replace(tmp_path, path)
            tmp_path = None
        except OSError as e:
            raise PackError(f"Failed to write '{path}': {e}")
        finally:
            util.discard(tmp_path)
        return path

    def remove(self, key) -> bool:
        """Removes the entry for key, if present.

        :param key: cache key.
        :raises RemoveError: if the entry exists and cannot be removed.
        :return: True if an entry was removed.
        """
        return util.remove_object(self.path_for(key))

    def entries(self) -> List[Tuple[str, int, float]]:
        """Lists the archives in the store.

        :return: list of (key, size in bytes, mtime) tuples, sorted by key.
        """
        if not os.path.isdir(self.root):
            return []

        results = []
        for name in sorted(os.listdir(self.root)):
            path = os.path.join(self.root, name)
            if not name.endswith(config.ARCHIVE_EXT) or not os.path.isfile(path):
                continue
            st = os.stat(path)
            results.append((name[: -len(config.ARCHIVE_EXT)], st.st_size, st.st_mtime))
        return results

    def clean(self, dryrun: bool = False) -> int:
        """Deletes the whole store directory.

        :param dryrun: only log what would be deleted.
        :raises RemoveError: if the root is unsafe to delete or removal fails.
        :return: number of archives deleted.
        """
        if not os.path.exists(self.root):
            log.info("Cache directory does not exist: %s", self.root)
            return 0

        if util.is_dangerous_root(self.root):
            raise RemoveError(f"Refusing to delete dangerous cache root: {self.root}")

        count = len(self.entries())
        if dryrun:
            log.info("Would delete %d entries in %s", count, self.root)
            return count

        try:
            shutil.rmtree(self.root)
        except OSError as e:
            raise RemoveError(f"Failed to delete {self.root}: {e}")

        log.info("Deleted %d entries in %s", count, self.root)
        return count
