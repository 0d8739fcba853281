"""Flat JSON file holding the lead directory.

Reads never fail: a missing, unreadable or non-array file is an empty
directory. Writes replace the whole file atomically (temp file + rename in
the same directory).
"""

import asyncio
import json
import logging
import os
import tempfile
from pathlib import Path

from src.mp_leads.domain.models import Lead

logger = logging.getLogger("mp.leads")


class LeadFileStore:
    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def _read_sync(self) -> list[Lead]:
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return []
        except (OSError, ValueError):
            logger.warning("Unreadable leads file %s, treating as empty", self.path, exc_info=True)
            return []
        if not isinstance(data, list):
            logger.warning("Leads file %s is not a JSON array, treating as empty", self.path)
            return []
        return [Lead.from_dict(item) for item in data if isinstance(item, dict)]

    def _write_sync(self, leads: list[Lead]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump([lead.to_dict() for lead in leads], fh, indent=2, ensure_ascii=False)
            os.replace(tmp, self.path)
        except BaseException:
            Path(tmp).unlink(missing_ok=True)
            raise

    async def read(self) -> list[Lead]:
        return await asyncio.to_thread(self._read_sync)

    async def replace_all(self, leads: list[Lead]) -> None:
        await asyncio.to_thread(self._write_sync, leads)
        logger.info("Leads file replaced path=%s count=%d", self.path, len(leads))
