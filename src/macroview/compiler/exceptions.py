"""Compiler exceptions."""

from typing import Optional


class InvalidTemplateError(ValueError):
    """Raised when a template cannot be compiled."""

    def __init__(
        self,
        message: str,
        file_path: Optional[str] = None,
        line: Optional[int] = None,
    ) -> None:
        self.message = message
        self.file_path = file_path
        self.line = line
        super().__init__(str(self))

    def with_location(
        self, file_path: Optional[str], line: Optional[int] = None
    ) -> "InvalidTemplateError":
        """Return a copy of the error pointing at ``file_path``."""
        return InvalidTemplateError(
            self.message,
            file_path=self.file_path or file_path,
            line=self.line if self.line is not None else line,
        )

    def __str__(self) -> str:
        if not self.file_path:
            return self.message
        if self.line is not None:
            return f"{self.file_path}:{self.line}: {self.message}"
        return f"{self.file_path}: {self.message}"
