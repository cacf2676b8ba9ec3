"""On-device credential file."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional, Union

logger = logging.getLogger(__name__)


class CredentialStore:
    """JSON file holding the last sign-in credential and access token."""

    def __init__(self, path: Union[str, Path]) -> None:
        self.path = Path(path)

    def exists(self) -> bool:
        """Cheap presence check; says nothing about whether the credential is still valid."""
        try:
            return self.path.is_file() and self.path.stat().st_size > 0
        except OSError:
            return False

    def load(self) -> Optional[Dict[str, Any]]:
        if not self.exists():
            return None
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Unreadable credential file {self.path}: {e}")
            return None
        return data if isinstance(data, dict) else None

    def save(self, credential: Dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump(credential, f)

    def clear(self) -> None:
        self.path.unlink(missing_ok=True)
