from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field

Severity = Literal["error", "warning"]


class ValidationIssue(BaseModel):
    model_config = ConfigDict(frozen=True)

    message: str
    code: Optional[str] = Field(default=None, description="Stable machine-readable issue code")
    path: Optional[str] = Field(default=None, description="Location, e.g. @graph[3].headline")
    type: Optional[str] = Field(default=None, description="schema.org type whose rule raised the issue")
    id: Optional[str] = Field(default=None, description="@id involved, for id-level issues")


class ValidationReport(BaseModel):
    """Errors and warnings for one document. Errors block publication; warnings do not."""

    model_config = ConfigDict(frozen=True)

    errors: tuple[ValidationIssue, ...] = ()
    warnings: tuple[ValidationIssue, ...] = ()

    @computed_field  # type: ignore[prop-decorator]
    @property
    def counts(self) -> dict[str, int]:
        return {"errors": len(self.errors), "warnings": len(self.warnings)}

    @computed_field  # type: ignore[prop-decorator]
    @property
    def summary(self) -> str:
        return f"{len(self.errors)} errors, {len(self.warnings)} warnings"

    @property
    def ok(self) -> bool:
        return not self.errors

    def codes(self, severity: Severity = "error") -> list[Optional[str]]:
        issues = self.errors if severity == "error" else self.warnings
        return [issue.code for issue in issues]


class ReportBuilder:
    """Mutable accumulator used while a document is being checked."""

    def __init__(self) -> None:
        self.errors: list[ValidationIssue] = []
        self.warnings: list[ValidationIssue] = []

    def add(self, severity: Severity, message: str, **meta: Optional[str]) -> None:
        issue = ValidationIssue(message=message, **meta)
        if severity == "error":
            self.errors.append(issue)
        else:
            self.warnings.append(issue)

    def build(self) -> ValidationReport:
        return ValidationReport(errors=tuple(self.errors), warnings=tuple(self.warnings))
