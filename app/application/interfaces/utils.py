from __future__ import annotations
from typing import Protocol


class IIdGenerator(Protocol):
    """Generates unique, collision-resistant identifiers."""

    def new_id(self) -> str:
        ...
