"""Request descriptors and replies exchanged with the daemon."""

from typing import Any, List, Optional

from pydantic import BaseModel, Field, validator


class RequestDescriptor(BaseModel):
    """A daemon command plus its ordered string arguments."""

    command: str = Field(..., description="Daemon command name")
    args: List[str] = Field(default_factory=list, description="Ordered command arguments")

    @validator('command')
    def validate_command(cls, v):
        """Validate command is not empty."""
        if not v.strip():
            raise ValueError("command cannot be empty")
        return v.strip()

    def as_list(self) -> List[str]:
        return [self.command, *self.args]

    def __str__(self) -> str:
        return " ".join(self.as_list())


class Reply(BaseModel):
    """One success/failure reply for one request."""

    success: bool = Field(..., description="Whether the daemon reported success")
    payload: Optional[Any] = Field(None, description="Decoded reply payload")

    @classmethod
    def failure(cls, reason: Any) -> "Reply":
        return cls(success=False, payload=reason)
