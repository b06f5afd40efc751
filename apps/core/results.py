# apps/core/results.py

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional


class ErrorCode(str, Enum):
    DUPLICATE_INTERACTION = "duplicate_interaction"
    NOT_FOUND = "not_found"
    INVALID_REQUEST = "invalid_request"


@dataclass
class OperationResult:
    """
    {success, error?} shape returned by every mutating service.
    Expected business conditions land here instead of being raised.
    """
    success: bool
    error: Optional[ErrorCode] = None
    data: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def ok(cls, **data) -> "OperationResult":
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, error: ErrorCode, **data) -> "OperationResult":
        return cls(success=False, error=error, data=data)

    def get(self, key: str, default=None):
        return self.data.get(key, default)

    def as_dict(self) -> Dict[str, Any]:
        payload = {"success": self.success, **self.data}
        if self.error is not None:
            payload["error"] = self.error.value
        return payload
