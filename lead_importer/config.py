"""Configuration helpers for the lead import pipeline."""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple

LOGGER = logging.getLogger(__name__)


class ConfigurationError(RuntimeError):
    """Raised when configuration files are missing or malformed."""


_SUPPORTED_EXTENSIONS = {".json", ".yaml", ".yml"}

DEFAULT_EXCLUDED_SHEET_KEYWORDS: Tuple[str, ...] = (
    "old",
    "archive",
    "summary",
    "deleted",
    "junk",
    "temp",
    "sheet2",
    "sheet3",
)


@dataclass(frozen=True)
class ImportSettings:
    """Tunable limits and defaults used by a single import run."""

    batch_size: int = 1000
    excluded_sheet_keywords: Tuple[str, ...] = DEFAULT_EXCLUDED_SHEET_KEYWORDS
    header_scan_rows: int = 30
    max_detail_rows: int = 100
    invalid_char_threshold: int = 50
    invalid_char_ratio: float = 0.05
    legacy_encoding: str = "cp1252"
    default_country_code: Optional[str] = "+91"
    default_source: str = "Bulk Import"
    max_upload_bytes: int = 10 * 1024 * 1024

    def __post_init__(self) -> None:
        if self.batch_size < 1:
            raise ConfigurationError("batch_size must be a positive integer")
        if self.max_detail_rows < 0:
            raise ConfigurationError("max_detail_rows cannot be negative")


def load_configuration(path: str | Path) -> Dict[str, Any]:
    """Load configuration data from a JSON or YAML file."""

    file_path = Path(path)
    if not file_path.exists():
        raise ConfigurationError(f"Configuration file '{file_path}' was not found")

    if file_path.suffix.lower() not in _SUPPORTED_EXTENSIONS:
        raise ConfigurationError(
            f"Unsupported configuration format '{file_path.suffix}'. Supported extensions: {sorted(_SUPPORTED_EXTENSIONS)}"
        )

    text = file_path.read_text(encoding="utf-8")
    if file_path.suffix.lower() == ".json":
        try:
            return json.loads(text)
        except json.JSONDecodeError as exc:
            raise ConfigurationError(f"Configuration file '{file_path}' is not valid JSON: {exc}") from exc

    try:
        import yaml  # type: ignore
    except ImportError as exc:  # pragma: no cover - dependency optional
        raise ConfigurationError(
            "YAML configuration requires the 'pyyaml' package to be installed"
        ) from exc

    return yaml.safe_load(text) or {}  # type: ignore[no-any-return]


def settings_from_config(config: Mapping[str, Any]) -> ImportSettings:
    """Build :class:`ImportSettings` from the optional ``import`` section."""

    section = config.get("import") or {}
    if not isinstance(section, Mapping):
        raise ConfigurationError("The 'import' configuration section must be a mapping")

    known = {item.name for item in fields(ImportSettings)}
    options: Dict[str, Any] = {}
    for key, value in section.items():
        if key not in known:
            LOGGER.warning("Ignoring unknown import setting %s", key)
            continue
        options[key] = value

    keywords = options.get("excluded_sheet_keywords")
    if keywords is not None:
        if isinstance(keywords, str):
            keywords = [keywords]
        options["excluded_sheet_keywords"] = tuple(str(item).strip().lower() for item in keywords if str(item).strip())

    try:
        return ImportSettings(**options)
    except TypeError as exc:
        raise ConfigurationError(f"Invalid import settings: {exc}") from exc
