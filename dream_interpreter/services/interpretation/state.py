"""In-memory holder for the active interpretation session."""
from __future__ import annotations

from typing import Optional, Tuple

from dream_interpreter.domain.interpretation.session import Session


class SessionStateContainer:
    """Current Session (or none) plus a loading flag.

    The owning orchestrator is the only writer. Sessions are immutable and
    swapped by reference, so readers never see a half-applied update.
    """

    def __init__(self) -> None:
        self._session: Optional[Session] = None
        self._loading = False

    @property
    def current(self) -> Optional[Session]:
        return self._session

    @property
    def is_loading(self) -> bool:
        return self._loading

    @property
    def is_complete(self) -> bool:
        return self._session is not None and self._session.is_complete

    def snapshot(self) -> Tuple[Optional[Session], bool]:
        return self._session, self._loading

    def replace(self, session: Session) -> None:
        self._session = session

    def set_loading(self, loading: bool) -> None:
        self._loading = loading

    def clear(self) -> None:
        self._session = None
        self._loading = False
