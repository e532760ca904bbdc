"""Services managing interactive graph sessions for the HTTP layer."""

from __future__ import annotations

import logging
from collections import OrderedDict
from threading import RLock
from typing import Any, Iterable, List, Mapping, Optional
from uuid import uuid4

from ..config import AppConfig
from .session import GraphSession

LOGGER = logging.getLogger(__name__)


class SessionNotFoundError(KeyError):
    """Raised when a session id does not name a live session."""


class GraphSessionRegistry:
    """Thread-safe registry of live sessions with least-recently-used eviction."""

    def __init__(self, *, max_sessions: int) -> None:
        if max_sessions < 1:
            raise ValueError("max_sessions must be positive")
        self._max_sessions = max_sessions
        self._lock = RLock()
        self._sessions: "OrderedDict[str, GraphSession]" = OrderedDict()

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    def __contains__(self, session_id: object) -> bool:
        with self._lock:
            return session_id in self._sessions

    def add(self, session_id: str, session: GraphSession) -> None:
        with self._lock:
            self._sessions[session_id] = session
            self._sessions.move_to_end(session_id)
            while len(self._sessions) > self._max_sessions:
                evicted_id, evicted = self._sessions.popitem(last=False)
                LOGGER.warning("Evicting least recently used graph session %s", evicted_id)
                evicted.close()

    def get(self, session_id: str) -> GraphSession:
        with self._lock:
            session = self._sessions.get(session_id)
            if session is None:
                raise SessionNotFoundError(session_id)
            self._sessions.move_to_end(session_id)
            return session

    def remove(self, session_id: str) -> GraphSession:
        with self._lock:
            session = self._sessions.pop(session_id, None)
        if session is None:
            raise SessionNotFoundError(session_id)
        session.close()
        return session

    def session_ids(self) -> List[str]:
        with self._lock:
            return list(self._sessions)

    def close_all(self) -> None:
        with self._lock:
            sessions = list(self._sessions.values())
            self._sessions.clear()
        for session in sessions:
            session.close()


class GraphViewService:
    """Create, look up, reload and tear down graph sessions."""

    def __init__(self, config: AppConfig, *, registry: Optional[GraphSessionRegistry] = None) -> None:
        self._config = config
        if registry is None:
            registry = GraphSessionRegistry(max_sessions=config.ui.max_sessions)
        self._registry = registry

    @property
    def registry(self) -> GraphSessionRegistry:
        return self._registry

    def create_session(
        self,
        node_data: Mapping[str, Any],
        edge_data: Iterable[Any],
        *,
        width: Optional[float] = None,
        height: Optional[float] = None,
    ) -> tuple[str, GraphSession]:
        """Validate the input and register a new session for it.

        Raises:
            GraphValidationError: If the input is rejected.
        """

        session = GraphSession(self._config, node_data, edge_data, width=width, height=height)
        session_id = uuid4().hex
        self._registry.add(session_id, session)
        LOGGER.info(
            "Created graph session %s (nodes=%d, links=%d)",
            session_id,
            session.model.node_count,
            session.model.link_count,
        )
        return session_id, session

    def get_session(self, session_id: str) -> GraphSession:
        return self._registry.get(session_id)

    def reload(
        self,
        session_id: str,
        node_data: Mapping[str, Any],
        edge_data: Iterable[Any],
        *,
        reset_interaction: bool = False,
    ) -> GraphSession:
        session = self._registry.get(session_id)
        generation = session.load(node_data, edge_data, reset_interaction=reset_interaction)
        LOGGER.info("Reloaded graph session %s (generation=%d)", session_id, generation)
        return session

    def advance(self, session_id: str, steps: int) -> GraphSession:
        """Tick a session, never more than the configured per-request cap."""

        session = self._registry.get(session_id)
        capped = max(0, min(steps, self._config.ui.max_ticks_per_request))
        if capped:
            session.advance(capped)
        return session

    def close_session(self, session_id: str) -> None:
        self._registry.remove(session_id)
        LOGGER.info("Closed graph session %s", session_id)

    def shutdown(self) -> None:
        self._registry.close_all()


__all__ = ["GraphSessionRegistry", "GraphViewService", "SessionNotFoundError"]
