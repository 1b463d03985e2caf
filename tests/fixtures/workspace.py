"""Filesystem helpers shared by tests."""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Mapping, Union


@dataclass
class WorkspaceBuilder:
    """Helper bound to a tmp directory for writing banks and configs."""

    root: Path

    @property
    def data_home(self) -> Path:
        """Directory tests pass as ``--workspace``; created on demand."""

        return self.root / "data"

    def write(
        self, relative: Union[str, Path], content: Union[str, bytes]
    ) -> Path:
        path = self.root / Path(relative)
        path.parent.mkdir(parents=True, exist_ok=True)
        if isinstance(content, bytes):
            path.write_bytes(content)
        else:
            path.write_text(content, encoding="utf-8")
        return path

    def write_bank(
        self,
        relative: Union[str, Path],
        records: Iterable[Mapping[str, object]],
    ) -> Path:
        """Write ``records`` as JSON Lines or a JSON array, by suffix."""

        rows = [dict(record) for record in records]
        if str(relative).endswith(".jsonl"):
            body = "".join(json.dumps(row) + "\n" for row in rows)
        else:
            body = json.dumps(rows, indent=2)
        return self.write(relative, body)
