# codeseek/application/sessions.py

import json
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional

from codeseek.domain.models import ConversationEntry


SESSION_ID_FORMAT = "%Y%m%dT%H%M%S%fZ"
_SESSION_ID = re.compile(r"\d{8}T\d{12}Z")
_UNSAFE_NAME_CHARS = re.compile(r"[^\w.-]")


class ConversationSession:
    """
    Question/answer history for one project, saved as JSON after every
    exchange so an interrupted REPL loses nothing.

    Files are named "<project>-<session id>.json"; session ids are UTC
    timestamps, so the newest session sorts last.
    """

    def __init__(
        self,
        project_name: str,
        sessions_dir: str,
        session_id: Optional[str] = None,
    ):
        self.project_name = project_name
        self.session_id = session_id or datetime.now(timezone.utc).strftime(SESSION_ID_FORMAT)
        self._sessions_dir = Path(sessions_dir).expanduser()
        self._file_prefix = _UNSAFE_NAME_CHARS.sub("_", project_name) + "-"
        self.entries: List[ConversationEntry] = []

    @property
    def session_file(self) -> Path:
        return self._sessions_dir / f"{self._file_prefix}{self.session_id}.json"

    def add(self, query: str, answer: str, provider: str) -> ConversationEntry:
        entry = ConversationEntry(
            query=query,
            answer=answer,
            provider=provider,
            timestamp=datetime.now(timezone.utc),
        )
        self.entries.append(entry)
        self.save()
        return entry

    def save(self) -> None:
        self._sessions_dir.mkdir(parents=True, exist_ok=True)
        payload = {
            "project_name": self.project_name,
            "session_id": self.session_id,
            "conversations": [
                {
                    "query": e.query,
                    "answer": e.answer,
                    "provider": e.provider,
                    "timestamp": e.timestamp.isoformat(),
                }
                for e in self.entries
            ],
        }
        self.session_file.write_text(json.dumps(payload, indent=2), encoding="utf-8")

    def history_text(self) -> str:
        return "\n---\n\n".join(
            f"Q: {e.query}\nA: {e.answer}\n(via {e.provider})\n" for e in self.entries
        )

    def load_previous(self) -> bool:
        """
        Prepend the conversations of this project's newest earlier session.
        Returns False when there is none or it cannot be read.
        """
        previous = [p for p in self._session_files() if p != self.session_file]
        if not previous:
            return False

        latest = previous[-1]
        try:
            payload = json.loads(latest.read_text(encoding="utf-8"))
            loaded = [
                ConversationEntry(
                    query=item["query"],
                    answer=item["answer"],
                    provider=item["provider"],
                    timestamp=datetime.fromisoformat(item["timestamp"]),
                )
                for item in payload.get("conversations", [])
            ]
        except (OSError, ValueError, KeyError, TypeError) as error:
            print(f"[Session] ⚠ Could not load '{latest.name}': {error}")
            return False

        self.entries = loaded + self.entries
        print(f"[Session] Loaded {len(loaded)} conversations from {latest.name}")
        return True

    def _session_files(self) -> List[Path]:
        if not self._sessions_dir.is_dir():
            return []
        # "demo-<id>.json" must not pick up "demo-app-<id>.json"
        return sorted(
            path for path in self._sessions_dir.glob(f"{self._file_prefix}*.json")
            if _SESSION_ID.fullmatch(path.stem[len(self._file_prefix):])
        )
