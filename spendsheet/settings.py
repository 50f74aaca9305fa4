"""Runtime limits and catalog configuration.

Defaults live on ``PipelineConfig``; ``SPENDSHEET_*`` environment variables
override them, and a JSON config file (``spendsheet config init``) can set
limits and replace the rule or source catalogs, either inline or as paths to
JSON catalog files.
"""

from __future__ import annotations

import json
import os
from dataclasses import asdict, dataclass, fields, replace
from pathlib import Path
from typing import Any, Callable, Mapping

from spendsheet.classifier import DEFAULT_RULES, ClassificationRule, load_rules, rule_to_dict, rules_from_list
from spendsheet.definitions import DEFAULT_DEFINITIONS, SourceDefinition, definitions_from_list, load_definitions
from spendsheet.html_repair import MAX_REPAIR_PASSES
from spendsheet.matcher import MAX_SEARCH_ROWS
from spendsheet.normalizer import MAX_DATA_ROWS

ENV_PREFIX = "SPENDSHEET_"


@dataclass(frozen=True)
class PipelineConfig:
    max_search_rows: int = MAX_SEARCH_ROWS
    max_data_rows: int = MAX_DATA_ROWS
    max_repair_passes: int = MAX_REPAIR_PASSES
    concurrency: int = 4

    def __post_init__(self) -> None:
        for item in fields(self):
            value = getattr(self, item.name)
            if not isinstance(value, int) or isinstance(value, bool) or value < 1:
                raise ValueError(f"{item.name} must be a positive integer, got {value!r}")

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "PipelineConfig":
        environ = os.environ if environ is None else environ
        overrides: dict[str, int] = {}
        for item in fields(cls):
            raw = environ.get(ENV_PREFIX + item.name.upper())
            if raw is None or not raw.strip():
                continue
            try:
                overrides[item.name] = int(raw)
            except ValueError as exc:
                raise ValueError(f"{ENV_PREFIX}{item.name.upper()} must be an integer, got {raw!r}") from exc
        return cls(**overrides)

    def with_limits(self, limits: Mapping[str, Any]) -> "PipelineConfig":
        known = {item.name for item in fields(self)}
        unknown = sorted(set(limits) - known)
        if unknown:
            raise ValueError(f"Unknown limits in config: {unknown}. Allowed: {sorted(known)}")
        return replace(self, **dict(limits))


@dataclass(frozen=True)
class Settings:
    config: PipelineConfig
    definitions: tuple[SourceDefinition, ...] = DEFAULT_DEFINITIONS
    rules: tuple[ClassificationRule, ...] = DEFAULT_RULES


def _catalog(value: Any, base_dir: Path, from_list: Callable, from_file: Callable) -> tuple:
    """An inline list, or a path to a JSON list (relative to the config file)."""
    if isinstance(value, str):
        path = Path(value)
        if not path.is_absolute():
            path = base_dir / path
        if not path.exists():
            raise FileNotFoundError(f"Catalog not found: {path}")
        try:
            return from_file(path)
        except json.JSONDecodeError as exc:
            raise ValueError(f"Could not read catalog {path}: {exc}") from exc
    return from_list(value)


def load_settings(path: "str | Path | None" = None, environ: Mapping[str, str] | None = None) -> Settings:
    """Environment-derived config, then the optional JSON file on top."""
    config = PipelineConfig.from_env(environ)
    if path is None:
        return Settings(config=config)

    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(f"Config not found: {config_path}")
    try:
        payload = json.loads(config_path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ValueError(f"Could not read config {config_path}: {exc}") from exc
    if not isinstance(payload, dict):
        raise ValueError("Config root must be a JSON object.")

    config = config.with_limits(payload.get("limits") or {})
    definitions = DEFAULT_DEFINITIONS
    if payload.get("sources"):
        definitions = _catalog(payload["sources"], config_path.parent, definitions_from_list, load_definitions)
    rules = DEFAULT_RULES
    if payload.get("rules") is not None:
        rules = _catalog(payload["rules"], config_path.parent, rules_from_list, load_rules)
    return Settings(config=config, definitions=definitions, rules=rules)


def starter_config() -> dict[str, Any]:
    return {
        "limits": asdict(PipelineConfig()),
        "rules": [rule_to_dict(rule) for rule in DEFAULT_RULES],
    }
