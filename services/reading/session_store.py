"""Simple in-memory store for reading sessions."""

from __future__ import annotations

import logging
from collections import OrderedDict
from typing import Callable
from uuid import uuid4

from services.reading.workflow import ReadingWorkflow

LOGGER = logging.getLogger(__name__)
DEFAULT_MAX_SESSIONS = 200


class SessionStore:
	"""Manage one reading workflow per browser session.

	At most ``max_sessions`` readings are kept; creating one more evicts the
	oldest reading and drops everything it holds.
	"""

	def __init__(self, workflow_factory: Callable[[], ReadingWorkflow], max_sessions: int = DEFAULT_MAX_SESSIONS) -> None:
		if max_sessions < 1:
			raise ValueError("max_sessions must be at least 1")
		self._workflow_factory = workflow_factory
		self.max_sessions = max_sessions
		self._sessions: OrderedDict[str, ReadingWorkflow] = OrderedDict()

	def create(self) -> tuple[str, ReadingWorkflow]:
		"""Create a new idle reading and return its id with the workflow."""
		while len(self._sessions) >= self.max_sessions:
			evicted_id, evicted = self._sessions.popitem(last=False)
			evicted.reset()
			LOGGER.info("Evicted reading %s to stay within %d sessions", evicted_id, self.max_sessions)
		session_id = uuid4().hex
		workflow = self._workflow_factory()
		self._sessions[session_id] = workflow
		return session_id, workflow

	def get(self, session_id: str) -> ReadingWorkflow:
		"""Return a workflow or raise KeyError if missing."""
		workflow = self._sessions.get(session_id)
		if workflow is None:
			raise KeyError(f"Session {session_id} not found")
		return workflow

	def discard(self, session_id: str) -> None:
		"""Drop a session and everything it holds."""
		workflow = self._sessions.pop(session_id, None)
		if workflow is None:
			raise KeyError(f"Session {session_id} not found")
		workflow.reset()

	def __len__(self) -> int:
		return len(self._sessions)
