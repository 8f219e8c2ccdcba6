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
Contains the runtime platform identifier used to namespace cache keys.
"""

import re
import subprocess
from typing import List, Optional

from depcache import config
from depcache.errors import PlatformUndetectable
from depcache.logger import log

# anything else would leak separators or whitespace into cache keys
UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


def normalize_platform_id(value: str) -> str:
    """Replaces runs of unsafe characters with a dash.

    :param value: raw platform string, e.g. "v18.19.0-linux-x64".
    :return: platform string safe to use in a file name.
    """
    return UNSAFE_CHARS.sub("-", value.strip()).strip("-")


class RuntimeIdentifier(object):
    """Asks the dependency runtime for its version, os and architecture, so
    the identifier matches the runtime that will load the installed tree."""

    def __init__(self, command: Optional[List[str]] = None, cwd: str = "."):
        self.command = list(command or config.RUNTIME_COMMAND)
        self.cwd = cwd

    def platform_id(self) -> str:
        """Runs the runtime command and returns its normalized output.

        :raises PlatformUndetectable: if the runtime is missing, fails, or
            prints nothing.
        :return: platform id string.
        """
        log.debug("Running: %s", " ".join(self.command))
        try:
            result = subprocess.run(
                self.command,
                cwd=self.cwd,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                universal_newlines=True,
            )
        except OSError as e:
            raise PlatformUndetectable(
                f"Cannot run '{self.command[0]}' to detect platform: {e}"
            )

        if result.returncode != 0:
            raise PlatformUndetectable(
                f"'{self.command[0]}' exited with status {result.returncode}: "
                f"{result.stderr.strip()}"
            )

        platform_id = normalize_platform_id(result.stdout)
        if not platform_id:
            raise PlatformUndetectable(f"'{self.command[0]}' reported no platform")

        return platform_id
