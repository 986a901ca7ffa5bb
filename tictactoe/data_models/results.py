"""
Typed operation results returned across the service boundary.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Generic, Optional, TypeVar

from tictactoe.utils.exceptions import ArbiterError, ErrorKind

T = TypeVar('T')


@dataclass(frozen=True)
class ServiceError:
    """Tagged error carried by a failed result."""
    kind: ErrorKind
    code: int
    message: str


@dataclass
class ServiceResult(Generic[T]):
    """Either a success value or a tagged error, plus out-of-band metadata."""
    success: bool
    data: Optional[T] = None
    error: Optional[ServiceError] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def ok(cls, data: T, metadata: Optional[Dict[str, Any]] = None) -> 'ServiceResult[T]':
        return cls(success=True, data=data, metadata=dict(metadata or {}))

    @classmethod
    def fail(cls, error: ArbiterError) -> 'ServiceResult[T]':
        return cls(
            success=False,
            error=ServiceError(kind=error.kind, code=error.code, message=error.user_message)
        )

    @property
    def etag(self) -> Optional[str]:
        return self.metadata.get('ETag')
