from __future__ import annotations

import json
from pathlib import Path

from app.shiftledger.core.config import settings


class ActiveSessionCache:
    """Remembers the id of the session this terminal last attached to."""

    def __init__(self, path: str | Path | None = None) -> None:
        self.path = Path(path or settings.ACTIVE_SESSION_CACHE_PATH)

    def get(self) -> str | None:
        if not self.path.exists():
            return None
        try:
            payload = json.loads(self.path.read_text(encoding="utf-8"))
        except (ValueError, OSError):
            return None
        if not isinstance(payload, dict):
            return None
        session_id = payload.get("active_session_id")
        return session_id if isinstance(session_id, str) and session_id else None

    def set(self, session_id: str) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps({"active_session_id": session_id}, indent=2), encoding="utf-8")

    def clear(self) -> None:
        if self.path.exists():
            self.path.unlink()
