"""Release ledger: persisted creation order of releases.

Content-addressed slugs (commit SHAs, digests) do not sort chronologically.
The ledger remembers the order in which releases were created so that
``ReleaseStore`` can order by it instead of by name. It is kept up to date
through the store's ``release_created``/``release_deleted`` observations.
"""

from __future__ import annotations

import json
from pathlib import Path

from rollout.core.structured import as_obj_list, as_str_dict
from rollout.platform.files import atomic_write_text

__all__ = ["ReleaseLedger"]


class ReleaseLedger:
    """JSON-backed list of release slugs, oldest first.

    File format::

        {"releases": ["8a3195bf...", "73219b87..."]}
    """

    def __init__(self, path: Path) -> None:
        self.path = path

    def slugs(self) -> list[str]:
        """Recorded slugs, oldest first. A missing or unreadable file is empty."""
        try:
            data_obj: object = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError):
            return []
        data = as_str_dict(data_obj)
        items = as_obj_list(data.get("releases")) if data is not None else None
        if items is None:
            return []
        return [s for s in items if isinstance(s, str)]

    def release_created(self, path: Path) -> None:
        slugs = [s for s in self.slugs() if s != path.name]
        slugs.append(path.name)
        self._write(slugs)

    def release_deleted(self, path: Path) -> None:
        slugs = self.slugs()
        if path.name in slugs:
            self._write([s for s in slugs if s != path.name])

    def _write(self, slugs: list[str]) -> None:
        atomic_write_text(self.path, json.dumps({"releases": slugs}, indent=2) + "\n")
