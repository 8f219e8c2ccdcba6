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
Contains utility functions.
"""

import os
import shutil
import tempfile
from pathlib import Path
from typing import Optional

from depcache.errors import RemoveError
from depcache.logger import log


def ensure_dir(p: str) -> None:
    """Ensure that directory p exists.

    :param p: Directory path to ensure.
    """
    os.makedirs(p, exist_ok=True)


def temp_path_for(dest: str) -> str:
    """Returns a new temporary file path in the same directory as dest, so it
    can be moved over dest atomically.

    :param dest: final file path.
    :return: path to an empty temporary file.
    """
    folder, name = os.path.split(os.path.abspath(dest))
    ensure_dir(folder)
    fd, tmp_path = tempfile.mkstemp(prefix=f".{name}.", suffix=".tmp", dir=folder)
    os.close(fd)
    return tmp_path


def atomic_replace(src_tmp: str, dst: str) -> None:
    """Atomically replace dst with src_tmp.

    :param src_tmp: Temporary source file path.
    :param dst: Destination file path.
    """
    os.replace(src_tmp, dst)


def discard(path: Optional[str]) -> None:
    """Removes a partially written file, ignoring a missing file.

    :param path: file path or None.
    """
    if not path:
        return
    try:
        os.remove(path)
    except FileNotFoundError:
        pass
    except OSError as e:
        log.warning("Failed to remove partial file '%s': %s", path, e)


def remove_object(path: str) -> bool:
    """Deletes a file, link or directory tree.

    :param path: file system path.
    :raises RemoveError: if the path exists and cannot be removed.
    :return: True if something was removed.
    """
    try:
        if os.path.islink(path) or os.path.isfile(path):
            os.remove(path)
        elif os.path.isdir(path):
            shutil.rmtree(path)
        else:
            return False
    except OSError as e:
        raise RemoveError(f"Error removing '{path}': {e}")
    return True


def is_dangerous_root(path: str) -> bool:
    """Guards against deleting the wrong directory.

    :param path: directory path.
    :return: True for filesystem roots, very short paths and the home dir.
    """
    try:
        rp = Path(path).resolve()
    except Exception:
        rp = Path(path)

    if rp == Path(rp.anchor):
        return True
    if len(rp.parts) <= 2:
        return True
    if rp == Path.home().resolve():
        return True

    return False


def format_size(num_bytes: int) -> str:
    """Returns a human readable size, e.g. 1.2 MB.

    :param num_bytes: size in bytes.
    :return: formatted size.
    """
    size = float(num_bytes)
    for unit in ("B", "KB", "MB", "GB"):
        if size < 1024 or unit == "GB":
            return f"{size:.0f} {unit}" if unit == "B" else f"{size:.1f} {unit}"
        size /= 1024
    return f"{size:.1f} GB"


def yesNo(question: str) -> bool:
    """Displays question text to user and reads yes/no input.

    :param question: question text.
    :return: True if user answers yes.
    """
    while True:
        answer = input(f"{question} (y/n): ").strip().lower()
        if answer in {"y", "yes"}:
            return True
        elif answer in {"n", "no"}:
            return False
        else:
            print("Please answer 'y' or 'n'.")
