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
Contains the depcache exception classes.

Every failure carries an exit code so the command line can report a
distinguishable status for each class of problem.
"""


class DepCacheError(Exception):
    """Base class for all depcache errors."""

    exit_code = 1


class KeyDerivationError(DepCacheError):
    """Raised when a cache key cannot be formed."""

    exit_code = 2


class NoManifestFound(KeyDerivationError):
    """Raised when none of the candidate manifest files exist."""

    pass


class PlatformUndetectable(KeyDerivationError):
    """Raised when the runtime cannot report its version, os and arch."""

    pass


class CorruptArchive(DepCacheError):
    """Raised when a cache entry was found but could not be unpacked."""

    exit_code = 3


class InstallError(DepCacheError):
    """Raised when the install command exits with a non-zero status."""

    exit_code = 4


class PackError(DepCacheError):
    """Raised when the dependency tree cannot be archived or stored."""

    exit_code = 5


class RemoveError(DepCacheError):
    """Raised when a cache entry or dependency tree cannot be removed."""

    exit_code = 5


class TransportError(DepCacheError):
    """Raised when the remote store cannot be reached or rejects a command."""

    exit_code = 6


class ConfigError(DepCacheError):
    """Raised when the config file is unreadable or has invalid values."""

    exit_code = 7
