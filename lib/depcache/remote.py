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
Contains the remote cache store, backed by a redis server.

Values live under "<prefix>-<key>" with an expiry that is re-applied on every
hit, so archives in regular use never expire.
"""

from typing import Optional

import redis

from depcache import config
from depcache.errors import TransportError
from depcache.logger import log


class RemoteStore(object):
    """Archive blobs in a redis key/value store with a TTL."""

    def __init__(
        self,
        host: str,
        port: int = config.REDIS_PORT,
        ttl: int = config.REDIS_TTL,
        prefix: str = config.REDIS_PREFIX,
        password: Optional[str] = None,
        db: int = config.REDIS_DB,
        min_size: int = config.MIN_ARCHIVE_SIZE,
        client=None,
    ):
        self.host = host
        self.port = port
        self.ttl = ttl
        self.prefix = prefix
        self.password = password
        self.db = db
        self.min_size = min_size
        self._client = client

    @classmethod
    def from_settings(cls, settings) -> Optional["RemoteStore"]:
        """Returns a RemoteStore, or None if no remote host is configured."""
        if not settings.remote_enabled:
            return None
        return cls(
            settings.redis_host,
            port=settings.redis_port,
            ttl=settings.redis_ttl,
            prefix=settings.redis_prefix,
            password=settings.redis_password,
            db=settings.redis_db,
            min_size=settings.min_archive_size,
        )

    def __repr__(self) -> str:
        return f"<RemoteStore {self.host}:{self.port}/{self.db} prefix={self.prefix}>"

    @property
    def client(self) -> redis.Redis:
        """Connection to the redis server, created on first use."""
        if self._client is None:
            self._client = redis.Redis(
                host=self.host,
                port=self.port,
                db=self.db,
                password=self.password,
                socket_timeout=config.REDIS_TIMEOUT,
                socket_connect_timeout=config.REDIS_TIMEOUT,
            )
        return self._client

    def name_for(self, key) -> str:
        """Returns the namespaced redis key for a cache key."""
        return f"{self.prefix}-{key}"

    def get(self, key) -> Optional[bytes]:
        """Fetches the archive for key and renews its TTL.

        :param key: cache key.
        :raises TransportError: if the server cannot be reached.
        :return: archive bytes, or None on a miss.
        """
        name = self.name_for(key)
        try:
            data = self.client.get(name)
        except (redis.exceptions.RedisError, OSError) as e:
            raise TransportError(f"GET {name} failed: {e}")

        if data is None:
            log.debug("Remote miss: %s", name)
            return None

        # empty or garbled values are not archives
        if len(data) < self.min_size:
            log.warning(
                "Ignoring remote value for %s: %d bytes is below %d",
                name,
                len(data),
                self.min_size,
            )
            return None

        self.touch(key)
        return data

    def touch(self, key) -> bool:
        """Re-applies the TTL to key. Failures are logged, not raised.

        :param key: cache key.
        :return: True if the TTL was renewed.
        """
        name = self.name_for(key)
        try:
            self.client.expire(name, self.ttl)
        except (redis.exceptions.RedisError, OSError) as e:
            log.warning("Failed to renew TTL of %s: %s", name, e)
            return False
        return True

    def put(self, key, data: bytes) -> None:
        """Stores the archive for key, replacing any value and resetting the
        expiry to the full TTL.

        :param key: cache key.
        :param data: archive bytes.
        :raises TransportError: if the server cannot be reached.
        """
        name = self.name_for(key)
        try:
            self.client.setex(name, self.ttl, data)
        except (redis.exceptions.RedisError, OSError) as e:
            raise TransportError(f"SETEX {name} failed: {e}")
