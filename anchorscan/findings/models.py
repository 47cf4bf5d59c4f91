# Pydantic data models for findings: Finding, Location, Severity.

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class Severity(str, Enum):
    """How urgently a finding should be addressed."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class Location(BaseModel):
    """Where in the source a finding was reported. Positions are 1-based; the end is exclusive."""

    file: str
    start_line: int = Field(..., ge=1, description="1-based line number")
    start_col: int = Field(..., ge=1, description="1-based column number")
    end_line: int = Field(..., ge=1)
    end_col: int = Field(..., ge=1)

    def format(self) -> str:
        """Render as file:line:col, with the end appended when it differs."""
        if self.end_line != self.start_line:
            return f"{self.file}:{self.start_line}:{self.start_col}-{self.end_line}:{self.end_col}"
        if self.end_col != self.start_col:
            return f"{self.file}:{self.start_line}:{self.start_col}-{self.end_col}"
        return f"{self.file}:{self.start_line}:{self.start_col}"


class Finding(BaseModel):
    """A single issue reported by a rule (e.g. unchecked division in 'withdraw')."""

    rule_id: str
    severity: Severity
    title: str
    description: str
    location: Location
    snippet: str
    context: Optional[str] = None
