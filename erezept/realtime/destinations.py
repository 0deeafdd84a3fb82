"""
STOMP destination layout.

Clients SEND commands to the application prefix, SUBSCRIBE to shared
broker destinations (relayed through channel-layer groups) and to the
user prefix for private replies.  When the service runs under a context
path every prefix except the plain ``/queue`` carries it.
"""
from __future__ import annotations

import re
from typing import List, Optional

from erezept.paths import configured_context_path, normalize_context_path

EREZEPT_TOPIC_SUFFIX = "/erezept"
USER_QUEUE = "/queue/erezept"

_GROUP_UNSAFE = re.compile(r"[^a-zA-Z0-9_.-]")


class Destinations:
    def __init__(self, context_path: Optional[str] = None):
        if context_path is None:
            context_path = configured_context_path()
        self.context_path = normalize_context_path(context_path)

    def _with_context(self, destination: str) -> str:
        return self.context_path + destination

    @property
    def broker_prefixes(self) -> List[str]:
        if not self.context_path:
            return ["/topic", "/queue"]
        return [self._with_context("/topic"), "/queue", self._with_context("/queue")]

    @property
    def application_prefixes(self) -> List[str]:
        return [self._with_context("/app")]

    @property
    def user_prefix(self) -> str:
        return self._with_context("/user")

    @property
    def erezept_topic(self) -> str:
        return self._with_context("/topic" + EREZEPT_TOPIC_SUFFIX)

    @property
    def user_queue(self) -> str:
        """Private reply destination as the client subscribes to it."""
        return self.user_prefix + USER_QUEUE

    @staticmethod
    def _strip(destination: str, prefix: str) -> Optional[str]:
        if destination == prefix:
            return ""
        if destination.startswith(prefix + "/"):
            return destination[len(prefix):]
        return None

    def application_route(self, destination: str) -> Optional[str]:
        """``/app/erezept.read.5`` -> ``erezept.read.5``; ``None`` for other prefixes."""
        for prefix in self.application_prefixes:
            rest = self._strip(destination, prefix)
            if rest is not None:
                return rest.lstrip("/")
        return None

    def is_broker(self, destination: str) -> bool:
        return any(self._strip(destination, p) is not None for p in self.broker_prefixes)

    def is_user(self, destination: str) -> bool:
        return self._strip(destination, self.user_prefix) is not None

    @staticmethod
    def group_name(destination: str) -> str:
        """Channel-layer group for a broker destination (``/topic/erezept`` -> ``stomp.topic.erezept``)."""
        name = _GROUP_UNSAFE.sub("_", destination.strip("/").replace("/", "."))
        return ("stomp." + name)[:99]
