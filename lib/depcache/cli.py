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
Command line interface for depcache: restores a project's dependency tree
from cache, or installs it and caches the result.

Usage:

    $ depcache [DIRECTORY] [OPTIONS]
"""

import argparse
import os
import sys
from datetime import datetime

from depcache import CacheInstaller, DepCacheError, config, load_settings, util
from depcache.logger import log, setup_logging
from depcache.store import LocalStore


def parse_args(argv=None):
    """Parse command line arguments."""
    from depcache import __version__

    parser = argparse.ArgumentParser(
        prog="depcache",
        description=__doc__,
        formatter_class=argparse.RawTextHelpFormatter,
    )
    parser.add_argument(
        "directory",
        metavar="DIRECTORY",
        nargs="?",
        default=".",
        help="project directory containing the manifest (default is cwd)",
    )
    parser.add_argument(
        "-f",
        "--force",
        action="store_true",
        help="skip the cache lookup, reinstall and refresh the cache entry",
    )
    parser.add_argument(
        "-e",
        "--cache-existing",
        action="store_true",
        help="cache the dependency tree already on disk without installing",
    )
    parser.add_argument(
        "--cache-dir",
        metavar="DIR",
        help="local cache directory (default %s)" % config.CACHE_DIR,
    )
    parser.add_argument(
        "--redis-host",
        metavar="HOST",
        help="remote cache host (empty disables the remote cache)",
    )
    parser.add_argument(
        "--redis-port",
        metavar="PORT",
        type=int,
        help="remote cache port (default %d)" % config.REDIS_PORT,
    )
    parser.add_argument(
        "--ttl",
        metavar="SECONDS",
        type=int,
        dest="redis_ttl",
        help="remote entry time-to-live (default %d)" % config.REDIS_TTL,
    )
    parser.add_argument(
        "--prefix",
        metavar="PREFIX",
        dest="redis_prefix",
        help="remote key prefix (default '%s')" % config.REDIS_PREFIX,
    )
    parser.add_argument(
        "--install-cmd",
        metavar="CMD",
        dest="install_command",
        help="install command (default '%s')" % " ".join(config.INSTALL_COMMAND),
    )
    parser.add_argument(
        "-c",
        "--config",
        metavar="FILE",
        help="config file (default %s in DIRECTORY or home)" % config.CONFIG_FILE,
    )
    parser.add_argument(
        "-k",
        "--key",
        action="store_true",
        help="print the cache key and manifest, then exit",
    )
    parser.add_argument(
        "-l",
        "--list",
        action="store_true",
        help="list entries in the local cache",
    )
    parser.add_argument(
        "--clean",
        action="store_true",
        help="delete the local cache directory",
    )
    parser.add_argument(
        "-y",
        "--yes",
        action="store_true",
        help="answer yes to all questions, skipping user interaction",
    )
    parser.add_argument(
        "-d",
        "--dryrun",
        action="store_true",
        help="with --clean, show what would be deleted",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="show verbose information",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"depcache {__version__}",
    )

    return parser.parse_args(argv)


def list_entries(store: LocalStore) -> int:
    """Prints the entries in the local cache."""
    entries = store.entries()
    if not entries:
        print("no entries in %s" % store.root)
        return 0
    for key, size, mtime in entries:
        stamp = datetime.fromtimestamp(mtime).strftime("%Y-%m-%d %H:%M:%S")
        print(f"{stamp}  {util.format_size(size):>10}  {key}")
    return 0


def clean_cache(store: LocalStore, yes: bool = False, dryrun: bool = False) -> int:
    """Deletes the local cache after confirming with the user."""
    if not dryrun and not yes:
        if not util.yesNo("Delete all entries in %s?" % store.root):
            return 1
    store.clean(dryrun=dryrun)
    return 0


def main(argv=None):
    """Main thread."""

    args = parse_args(argv)

    # set up logging handlers
    setup_logging(verbose=args.verbose)

    # validate arguments
    if not os.path.isdir(args.directory):
        print("%s is not a directory" % args.directory)
        return 1
    if args.force and args.cache_existing:
        print("--force and --cache-existing are mutually exclusive")
        return 1

    try:
        settings = load_settings(
            args.config,
            workdir=args.directory,
            cache_dir=args.cache_dir,
            redis_host=args.redis_host,
            redis_port=args.redis_port,
            redis_ttl=args.redis_ttl,
            redis_prefix=args.redis_prefix,
            install_command=args.install_command,
        )

        if args.list:
            return list_entries(LocalStore(settings.cache_dir))
        if args.clean:
            return clean_cache(
                LocalStore(settings.cache_dir), yes=args.yes, dryrun=args.dryrun
            )

        installer = CacheInstaller.from_settings(settings)

        if args.key:
            key = installer.derive_key()
            print(key)
            print(installer.manifest.path)
            return 0

        installer.run(force=args.force, adopt_existing=args.cache_existing)

    except DepCacheError as e:
        log.error("depcache failed: %s", e)
        return e.exit_code

    except KeyboardInterrupt:
        print("Stopping install...")
        return 130

    return 0


if __name__ == "__main__":
    sys.exit(main())
