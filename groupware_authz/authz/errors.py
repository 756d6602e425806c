from __future__ import annotations

from . import mask as m
from .gid import GlobalID


class AccessDeniedError(Exception):
    """
    The permissions available on an object do not cover the requested ones.

    This is expected control flow (a computed denial), not a system fault.
    The web layer turns it into a 403 response.
    """

    http_status = 403

    def __init__(self, gid: GlobalID | None, requested: m.MaskLike, available: m.MaskLike | None) -> None:
        self.gid = gid
        self.requested = m.as_mask(requested)
        self.available = m.as_mask(available)
        super().__init__(
            f"access denied on {gid}: needs={m.to_string(self.missing)!r} "
            f"asked={m.to_string(self.requested)!r} have={m.to_string(self.available)!r}"
        )

    @property
    def missing(self) -> m.Mask:
        return m.subtract(self.requested, self.available)

    def to_dict(self) -> dict[str, object]:
        return {
            "detail": "access denied",
            "object": str(self.gid) if self.gid is not None else None,
            "requested": m.to_string(self.requested),
            "available": m.to_string(self.available),
            "missing": m.to_string(self.missing),
        }
