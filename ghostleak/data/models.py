"""
ghostleak/data/models.py
Finding record and exposure kinds.
"""

from __future__ import annotations

from dataclasses import dataclass, asdict
from enum import Enum
from typing import Any, Dict, Optional


class ExposureKind(str, Enum):
    """Closed set of exposures Ghostleak probes for. Values are the stored wire names."""
    GIT_CONFIG = "git"
    ENV_FILE = "env"

    @property
    def path(self) -> str:
        return _PATHS[self]

    @property
    def label(self) -> str:
        return _LABELS[self]


_PATHS = {
    ExposureKind.GIT_CONFIG: "/.git/config",
    ExposureKind.ENV_FILE: "/.env",
}

_LABELS = {
    ExposureKind.GIT_CONFIG: ".git/config",
    ExposureKind.ENV_FILE: ".env",
}


@dataclass(frozen=True)
class Finding:
    """
    One confirmed exposure. Never mutated after creation.

    The dict form (to_dict / from_dict) is what gets persisted under
    "foundItems" and what the control surface returns, so its field names
    stay stable: id, target, type, url, secrets, timestamp.
    """
    id: int
    target: str
    kind: ExposureKind
    url: str
    timestamp: str
    secrets: Optional[Any] = None

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["type"] = self.kind.value
        del data["kind"]
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Finding":
        return cls(
            id=int(data["id"]),
            target=data["target"],
            kind=ExposureKind(data["type"]),
            url=data["url"],
            timestamp=data.get("timestamp", ""),
            secrets=data.get("secrets"),
        )
