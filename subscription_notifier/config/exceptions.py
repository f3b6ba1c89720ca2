"""Configuration errors raised at startup."""

from typing import List, Optional


class ConfigurationError(Exception):
    """Configuration could not be loaded or failed validation.

    Collects every problem found in one pass so the operator can fix them
    together.

    Attributes:
        message: Summary line
        errors: Individual problems, one per invalid field or variable
        suggestions: Hints printed after the errors
        source: Where the bad values came from (a file path or "environment")
    """

    def __init__(
        self,
        message: str,
        errors: Optional[List[str]] = None,
        suggestions: Optional[List[str]] = None,
        source: Optional[str] = None,
    ):
        self.message = message
        self.errors = list(errors or [])
        self.suggestions = list(suggestions or [])
        self.source = source
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        lines = [f"{self.message} ({self.source})" if self.source else self.message]

        if self.errors:
            lines.append("")
            lines.append("Errors:")
            lines.extend(f"  {number}. {error}" for number, error in enumerate(self.errors, 1))

        if self.suggestions:
            lines.append("")
            lines.append("Try:")
            lines.extend(f"  - {suggestion}" for suggestion in self.suggestions)

        return "\n".join(lines)
