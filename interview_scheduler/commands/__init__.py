"""
Command infrastructure for the scheduling core.

Commands are validated, strongly typed requests built at the core boundary
from loosely typed payloads. Malformed input fails as a pydantic
ValidationError here, before any Event or User is touched. Handlers then
execute the command and return a CommandResult.
"""

from abc import ABC, abstractmethod
from datetime import date, datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from interview_scheduler.domain.availability import to_date


class Command(BaseModel):
    """Base class for all commands."""

    correlation_id: Optional[str] = Field(None, description="Correlation ID for tracking related operations")


def coerce_date(value: Any) -> Any:
    """Truncate datetimes and ISO datetime strings to dates; leave the rest to pydantic."""
    if value is None or (isinstance(value, date) and not isinstance(value, datetime)):
        return value
    if isinstance(value, (datetime, str)):
        try:
            return to_date(value)
        except ValueError:
            return value
    return value


class CommandResult(BaseModel):
    """Result of command execution."""

    aggregate_id: str = Field(..., description="ID of the Event or User that was modified")
    version: Optional[int] = Field(None, description="Event version after command execution")
    success: bool = Field(default=True, description="Whether command executed successfully")
    message: Optional[str] = Field(None, description="Optional message about the result")
    warnings: List[str] = Field(default_factory=list, description="Non-fatal consistency warnings")
    data: Dict[str, Any] = Field(default_factory=dict, description="Resulting entity or payload")


class CommandHandler(ABC):
    """Base class for command handlers."""

    @abstractmethod
    async def handle(self, command: Command) -> CommandResult:
        """
        Handle a command and return the result.

        Raises:
            CommandValidationError: If the command type is not handled here
            SchedulingError: For domain rule violations
            CommandExecutionError: If command execution fails unexpectedly
        """
        pass


class CommandValidationError(Exception):
    """Raised when command validation fails."""

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.field = field
        self.message = message


class CommandExecutionError(Exception):
    """Raised when command execution fails."""

    def __init__(self, message: str, original_error: Optional[Exception] = None):
        super().__init__(message)
        self.message = message
        self.original_error = original_error
