"""Placeholder configuration shared by every document operation."""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any

from docxmerge.exceptions import ConfigurationError


@dataclass(frozen=True)
class Config:
    """Delimiters used to recognise placeholders in a template.

    Parameters
    ----------
    placeholder_prefix : str, default "{{"
        Text opening a placeholder.
    placeholder_suffix : str, default "}}"
        Text closing a placeholder.
    repair_headers_footers : bool, default False
        Also rejoin placeholders that Word split across runs in header and
        footer parts. Only the main document part is repaired otherwise.

    """

    placeholder_prefix: str = "{{"
    placeholder_suffix: str = "}}"
    repair_headers_footers: bool = False

    def __post_init__(self) -> None:
        for field_name in ("placeholder_prefix", "placeholder_suffix"):
            value = getattr(self, field_name)
            if not isinstance(value, str) or not value:
                raise ConfigurationError(f"{field_name} must be a non-empty string, got {value!r}")

    def create_updated(self, **kwargs: Any) -> Config:
        """Return a copy of this configuration with ``kwargs`` applied."""

        return replace(self, **kwargs)

    def wrap(self, name: str) -> str:
        """Return ``name`` enclosed in the configured delimiters."""

        return f"{self.placeholder_prefix}{name}{self.placeholder_suffix}"

    def ensure_delimited(self, mark: str) -> str:
        """Wrap ``mark`` unless it already starts and ends with the delimiters."""

        if mark.startswith(self.placeholder_prefix) and mark.endswith(self.placeholder_suffix):
            return mark
        return self.wrap(mark)


DEFAULT_CONFIG = Config()
