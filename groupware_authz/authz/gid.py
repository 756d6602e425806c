from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class GlobalID:
    """
    Identifies a persisted object by entity name + primary key values.

    Primary keys are drawn from one namespace across the whole schema, so
    ``key`` alone is enough to address ACL rows of any entity.
    """

    entity: str
    keys: tuple[Any, ...]

    @classmethod
    def of(cls, entity: str, key: Any) -> GlobalID:
        return cls(entity, (key,))

    @property
    def key(self) -> Any:
        if len(self.keys) != 1:
            raise ValueError(f"{self!s} does not have a single primary key")
        return self.keys[0]

    @property
    def is_single_int_key(self) -> bool:
        return len(self.keys) == 1 and isinstance(self.keys[0], int) and not isinstance(self.keys[0], bool)

    def __str__(self) -> str:
        return f"{self.entity}<{','.join(str(k) for k in self.keys)}>"
