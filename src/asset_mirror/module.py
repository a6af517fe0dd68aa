"""Daemon lifecycle for the mirror sync listener.

The host hands the module a long-lived session and an event channel at
start-up; the module subscribes an ``EventDispatcher`` and removes it again
on shutdown.

Usage::

    from asset_mirror.config import load_config
    from asset_mirror.module import MirrorSyncModule

    module = MirrorSyncModule(load_config())
    module.initialize(session, channel)
    ...
    module.shutdown()
"""

from __future__ import annotations

import logging
from typing import Any, Protocol

from asset_mirror.config import load_config
from asset_mirror.config_schema import MirrorConfig
from asset_mirror.repository.base import RepositorySession
from asset_mirror.sync.dispatcher import EventDispatcher

logger = logging.getLogger(__name__)


class Subscribable(Protocol):
    def subscribe(self, handler: Any) -> None: ...

    def unsubscribe(self, handler: Any) -> None: ...


class MirrorSyncModule:
    """Register and unregister the mirror sync listener.

    Args:
        config: Layout configuration; loaded from files and environment
            when omitted.
    """

    def __init__(self, config: MirrorConfig | None = None) -> None:
        self.config = config or load_config()
        self.dispatcher: EventDispatcher | None = None
        self._channel: Subscribable | None = None

    @property
    def active(self) -> bool:
        return self.dispatcher is not None

    def initialize(self, session: RepositorySession, channel: Subscribable) -> EventDispatcher:
        """Subscribe a dispatcher bound to *session* on *channel*."""
        if self.dispatcher is not None:
            logger.warning("Mirror sync listener already initialized")
            return self.dispatcher

        self.dispatcher = EventDispatcher(session, self.config)
        self._channel = channel
        channel.subscribe(self.dispatcher)
        logger.info(
            "Mirror sync listener started: %s -> %s",
            self.config.repository.primary_root,
            self.config.repository.mirror_root,
        )
        return self.dispatcher

    def shutdown(self) -> None:
        """Unsubscribe the dispatcher.  Safe to call more than once."""
        if self.dispatcher is None or self._channel is None:
            return
        self._channel.unsubscribe(self.dispatcher)
        logger.info("Mirror sync listener stopped")
        self.dispatcher = None
        self._channel = None
