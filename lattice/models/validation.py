"""
Validation reports for documents on disk and for the stored graph.
"""

from enum import Enum

from pydantic import BaseModel, Field


class IssueSeverity(str, Enum):
    ERROR = "error"
    WARNING = "warning"


class ValidationIssue(BaseModel):
    """One problem found in a document or a graph node."""

    severity: IssueSeverity
    path: str = Field(..., description="Document path, or node name for graph issues")
    message: str
    label: str | None = Field(default=None, description="Node label for graph issues")
    field: str | None = None
    suggestion: str | None = None


class ValidationReport(BaseModel):
    """Issues plus what was inspected to find them."""

    issues: list[ValidationIssue] = Field(default_factory=list)
    documents_checked: int = 0
    entities_checked: int = 0
    total_nodes: int = 0

    @property
    def errors(self) -> list[ValidationIssue]:
        return [issue for issue in self.issues if issue.severity == IssueSeverity.ERROR]

    @property
    def warnings(self) -> list[ValidationIssue]:
        return [issue for issue in self.issues if issue.severity == IssueSeverity.WARNING]

    @property
    def valid(self) -> bool:
        return not self.errors

    def add(
        self,
        severity: IssueSeverity,
        path: str,
        message: str,
        label: str | None = None,
        field: str | None = None,
        suggestion: str | None = None,
    ) -> None:
        self.issues.append(
            ValidationIssue(
                severity=severity, path=path, message=message, label=label, field=field, suggestion=suggestion
            )
        )
