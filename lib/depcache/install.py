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
Contains the install command runner.
"""

import subprocess
from typing import List, Optional

from depcache import config
from depcache.logger import log

# exit status reported when the install command cannot be found
NOT_FOUND_EXIT = 127


class CommandInstaller(object):
    """Runs the package manager's install command in the project directory.
    Output goes straight to the terminal."""

    def __init__(
        self,
        command: Optional[List[str]] = None,
        cwd: str = ".",
        env: Optional[dict] = None,
    ):
        self.command = list(command or config.INSTALL_COMMAND)
        self.cwd = cwd
        self.env = env

    def install(self) -> int:
        """Runs the install command.

        :return: exit status of the command.
        """
        log.info("Running: '%s'", " ".join(self.command))
        try:
            result = subprocess.run(self.command, cwd=self.cwd, env=self.env)
        except OSError as e:
            log.error("Cannot run '%s': %s", self.command[0], e)
            return NOT_FOUND_EXIT
        return result.returncode
