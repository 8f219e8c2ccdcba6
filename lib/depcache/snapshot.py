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
Contains the archiver and the dependency tree snapshot operations.

Archives hold the tree directory itself, so unpacking into the project
directory recreates e.g. node_modules/ in place:

    node_modules/
    node_modules/.bin/tsc -> ../typescript/bin/tsc
    node_modules/typescript/package.json
"""

import os
import tarfile
import zlib
from typing import List

from tqdm import tqdm

from depcache import config, util
from depcache.errors import CorruptArchive, PackError
from depcache.logger import log


class TarArchiver(object):
    """Packs and unpacks gzipped tar archives. Both operations return an exit
    status instead of raising, like the external tools they stand in for."""

    def __init__(self, compresslevel: int = 6, progress: bool = True):
        self.compresslevel = compresslevel
        self.progress = progress

    def _bar(self, total: int, desc: str) -> tqdm:
        # disable=None turns the bar off when not attached to a terminal
        return tqdm(
            total=total,
            desc=desc,
            unit="file",
            leave=False,
            disable=None if self.progress else True,
        )

    @staticmethod
    def _list_entries(directory: str) -> List[str]:
        """Lists every path under directory, parents before children."""
        entries = [directory]
        for root, dirs, files in os.walk(directory, followlinks=False):
            dirs.sort()
            for d in dirs:
                entries.append(os.path.join(root, d))
            for f in sorted(files):
                entries.append(os.path.join(root, f))
        return entries

    def pack(self, directory: str, archive_path: str) -> int:
        """Archives directory to archive_path.

        :param directory: directory to archive.
        :param archive_path: archive file to write.
        :return: 0 on success, 1 on failure.
        """
        if not os.path.isdir(directory):
            log.error("Cannot pack '%s': not a directory", directory)
            return 1

        base = os.path.dirname(os.path.abspath(directory))
        try:
            entries = self._list_entries(directory)
            with tarfile.open(
                archive_path, "w:gz", compresslevel=self.compresslevel
            ) as tar, self._bar(len(entries), "[packing]") as bar:
                for path in entries:
                    arcname = os.path.relpath(os.path.abspath(path), base)
                    tar.add(path, arcname=arcname, recursive=False)
                    bar.update(1)
        except (tarfile.TarError, OSError) as e:
            log.error("Failed to pack '%s': %s", directory, e)
            return 1

        return 0

    @staticmethod
    def _is_safe(member: tarfile.TarInfo, dest: str) -> bool:
        """True if member, and the target of a link member, resolve inside
        dest. Must be called just before extracting member, so links
        extracted earlier are followed."""

        def inside(path):
            return os.path.commonpath([dest, os.path.realpath(path)]) == dest

        target = os.path.join(dest, member.name)
        if not inside(target):
            return False
        if member.issym():
            return inside(os.path.join(os.path.dirname(target), member.linkname))
        if member.islnk():
            return inside(os.path.join(dest, member.linkname))
        return True

    def unpack(self, archive_path: str, destination: str = ".") -> int:
        """Extracts archive_path into destination. Members, or link targets,
        that resolve outside destination are refused.

        :param archive_path: archive file to read.
        :param destination: directory to extract into.
        :return: 0 on success, 1 on failure.
        """
        dest = os.path.realpath(destination)
        # the "data" extraction filter is only in newer tarfile releases
        kwargs = {"filter": "data"} if hasattr(tarfile, "data_filter") else {}
        try:
            with tarfile.open(archive_path, "r:gz") as tar:
                members = tar.getmembers()
                with self._bar(len(members), "[unpacking]") as bar:
                    for member in members:
                        if not self._is_safe(member, dest):
                            log.error("Refusing to extract '%s'", member.name)
                            return 1
                        tar.extract(member, dest, **kwargs)
                        bar.update(1)
        except (tarfile.TarError, OSError, EOFError, zlib.error) as e:
            log.error("Failed to unpack '%s': %s", archive_path, e)
            return 1

        return 0


def pack_directory(archiver, directory: str, archive_path: str) -> str:
    """Packs directory into a temp file beside archive_path and moves it into
    place, so a failed pack never leaves a partial archive at archive_path.

    :param archiver: object with a pack(directory, archive_path) method.
    :param directory: directory to archive.
    :param archive_path: final archive path.
    :raises PackError: if packing fails.
    :return: archive_path.
    """
    if not os.path.isdir(directory):
        raise PackError(f"Nothing to pack: '{directory}' does not exist")

    tmp_path = None
    try:
        tmp_path = util.temp_path_for(archive_path)
        status = archiver.pack(directory, tmp_path)
        if status != 0:
            raise PackError(
                f"Failed to pack '{directory}' (exit status {status})"
            )
        util.atomic_replace(tmp_path, archive_path)
        tmp_path = None
    except OSError as e:
        raise PackError(f"Failed to write '{archive_path}': {e}")
    finally:
        util.discard(tmp_path)

    return archive_path


class Snapshot(object):
    """Operations on the dependency tree directory of a project."""

    def __init__(self, workdir: str = ".", tree_dir: str = config.TREE_DIR, archiver=None):
        self.workdir = workdir
        self.tree_dir = tree_dir
        self.archiver = archiver or TarArchiver()

    @property
    def tree_path(self) -> str:
        """Path to the dependency tree directory."""
        return os.path.join(self.workdir, self.tree_dir)

    def exists(self) -> bool:
        """True if the dependency tree directory exists."""
        return os.path.isdir(self.tree_path)

    def clear(self) -> None:
        """Removes the dependency tree, if present.

        :raises RemoveError: if the tree cannot be removed.
        """
        if util.remove_object(self.tree_path):
            log.debug("Removed %s", self.tree_path)

    def pack(self, archive_path: str) -> str:
        """Archives the dependency tree to archive_path.

        :param archive_path: archive file to write.
        :raises PackError: if packing fails; no partial file is left behind.
        :return: archive_path.
        """
        return pack_directory(self.archiver, self.tree_path, archive_path)

    def unpack(self, archive_path: str) -> None:
        """Extracts an archive into the project directory.

        :param archive_path: archive file to read.
        :raises FileNotFoundError: if the archive does not exist.
        :raises CorruptArchive: if the archive cannot be extracted.
        """
        if not os.path.isfile(archive_path):
            raise FileNotFoundError(f"Archive not found: {archive_path}")
        status = self.archiver.unpack(archive_path, self.workdir)
        if status != 0:
            raise CorruptArchive(
                f"Failed to unpack {archive_path} (exit status {status})"
            )
