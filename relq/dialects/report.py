"""Validation report returned by :class:`~relq.dialects.validator.SchemaDialectValidator`.

Validation never raises on its own; callers decide what to do with the
report::

    report = SchemaDialectValidator("awsdsql").validate(tables)
    for issue in report.warnings:
        log.warning("%s", issue)
    report.raise_for_errors()
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from relq.dialects.rules import Rule, RuleCategory, Severity
from relq.errors import RelqConfigError


class ValidationIssue(BaseModel):
    """One reported rule violation.

    Attributes:
        code: Rule code.
        severity: Rule severity.
        category: Rule category.
        message: Rule message.
        alternative: Suggested replacement.
        location: Where the violation was found (``users.email``,
            ``index idx_users_email``, ``statement 2`` ...).
        detail: The offending value when there is one.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    code: str
    severity: Severity
    category: RuleCategory
    message: str
    alternative: str
    location: str | None = None
    detail: str | None = None

    @classmethod
    def from_rule(cls, rule: Rule, location: str | None = None, detail: str | None = None) -> ValidationIssue:
        return cls(**rule.model_dump(), location=location, detail=detail)

    def __str__(self) -> str:
        where = f" [{self.location}]" if self.location else ""
        found = f" ({self.detail})" if self.detail else ""
        return f"{self.code}{where}: {self.message}{found} Alternative: {self.alternative}"


class ValidationReport(BaseModel):
    """All issues found for one dialect."""

    model_config = ConfigDict(extra="forbid")

    dialect: str
    issues: list[ValidationIssue] = Field(default_factory=list)

    def add(self, rule: Rule, location: str | None = None, detail: str | None = None) -> None:
        """Record *rule* at *location*; a rule is reported once per location."""
        if any(i.code == rule.code and i.location == location for i in self.issues):
            return
        self.issues.append(ValidationIssue.from_rule(rule, location, detail))

    @property
    def errors(self) -> list[ValidationIssue]:
        return [i for i in self.issues if i.severity == "error"]

    @property
    def warnings(self) -> list[ValidationIssue]:
        return [i for i in self.issues if i.severity == "warning"]

    @property
    def infos(self) -> list[ValidationIssue]:
        return [i for i in self.issues if i.severity == "info"]

    @property
    def is_valid(self) -> bool:
        """``True`` when no error-severity issue was reported."""
        return not self.errors

    def codes(self) -> list[str]:
        return [i.code for i in self.issues]

    def raise_for_errors(self) -> None:
        """Raise when the report holds at least one error.

        Raises:
            RelqConfigError: With ``field="dialect"``; the message lists
                every error.
        """
        errors = self.errors
        if not errors:
            return
        lines = "\n".join(f"  - {issue}" for issue in errors)
        raise RelqConfigError(
            f"Schema is not compatible with {self.dialect} ({len(errors)} error(s)):\n{lines}",
            field="dialect",
            value=self.dialect,
        )
