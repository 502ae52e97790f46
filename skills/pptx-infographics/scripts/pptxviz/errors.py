"""Custom exceptions for infographic deck and template config errors."""

from __future__ import annotations


class ConfigValidationError(ValueError):
    """Raised when a deck or template JSON config is invalid for rendering."""

    def __init__(self, issues: list[str], *, title: str = "Configuration validation failed"):
        self.issues = [str(i).strip() for i in issues if str(i).strip()]
        if not self.issues:
            self.issues = ["Invalid configuration"]
        self.title = title
        super().__init__(self._format())

    def _format(self) -> str:
        lines = [f"{self.title}:"]
        for issue in self.issues:
            lines.append(f"- {issue}")
        return "\n".join(lines)
