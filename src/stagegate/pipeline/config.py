"""Engine configuration and stage catalog loading."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from ruamel.yaml import YAML

from stagegate.models.requirements import parse_requirements
from stagegate.pipeline.catalog import WRITING_MODES, registry_for_mode
from stagegate.pipeline.registry import StageDefinition, StageRegistry

CONFIG_FILENAME = "stagegate.yaml"

# Default configuration values
DEFAULT_MODE = "essay"
DEFAULT_CREDIT_WITH_FEEDBACK = 8.5
DEFAULT_CREDIT_WITHOUT_FEEDBACK = 6.0


class ConfigError(Exception):
    """Raised when configuration or a stage catalog cannot be loaded."""

    def __init__(self, path: Path, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"Failed to load configuration at {path}: {reason}")


@dataclass
class ScoringConfig:
    """Credits used by the placeholder project score."""

    with_feedback: float = DEFAULT_CREDIT_WITH_FEEDBACK
    without_feedback: float = DEFAULT_CREDIT_WITHOUT_FEEDBACK

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ScoringConfig:
        return cls(
            with_feedback=float(data.get("with_feedback", DEFAULT_CREDIT_WITH_FEEDBACK)),
            without_feedback=float(data.get("without_feedback", DEFAULT_CREDIT_WITHOUT_FEEDBACK)),
        )


@dataclass
class EngineConfig:
    """Configuration for a StageGate deployment.

    Resolution order for ``mode`` and ``word_limit``:
    1. Environment variable (SG_MODE, SG_WORD_LIMIT)
    2. stagegate.yaml
    3. Defaults (essay mode, no word limit)

    Attributes:
        name: Display name for the deployment.
        mode: Built-in catalog to use ("essay" or "thesis").
        word_limit: Default global word limit for new projects.
        catalog: Optional path to a YAML stage catalog, replacing the built-in one.
            Relative paths resolve against the config file's directory.
        scoring: Placeholder score credits.
    """

    name: str = "stagegate"
    mode: str = DEFAULT_MODE
    word_limit: int | None = None
    catalog: Path | None = None
    scoring: ScoringConfig = field(default_factory=ScoringConfig)

    def get_mode(self) -> str:
        """Effective writing mode, honoring SG_MODE."""
        return os.getenv("SG_MODE") or self.mode

    def get_word_limit(self) -> int | None:
        """Effective default word limit, honoring SG_WORD_LIMIT.

        Raises:
            ValueError: If SG_WORD_LIMIT is set but is not an integer.
        """
        env_value = os.getenv("SG_WORD_LIMIT")
        if env_value:
            return int(env_value)
        return self.word_limit

    @classmethod
    def from_dict(cls, data: dict[str, Any], base_dir: Path | None = None) -> EngineConfig:
        """Create config from dictionary.

        Args:
            data: Dictionary containing config fields.
            base_dir: Directory that relative ``catalog`` paths resolve against.

        Returns:
            EngineConfig instance.
        """
        catalog = data.get("catalog")
        catalog_path: Path | None = None
        if catalog:
            catalog_path = Path(catalog)
            if base_dir is not None and not catalog_path.is_absolute():
                catalog_path = base_dir / catalog_path

        word_limit = data.get("word_limit")
        return cls(
            name=data.get("name", "stagegate"),
            mode=data.get("mode", DEFAULT_MODE),
            word_limit=int(word_limit) if word_limit is not None else None,
            catalog=catalog_path,
            scoring=ScoringConfig.from_dict(dict(data.get("scoring", {}))),
        )

    def to_dict(self) -> dict[str, Any]:
        """Plain data suitable for writing back to stagegate.yaml."""
        data: dict[str, Any] = {"name": self.name, "mode": self.mode}
        if self.word_limit is not None:
            data["word_limit"] = self.word_limit
        if self.catalog is not None:
            data["catalog"] = str(self.catalog)
        data["scoring"] = {
            "with_feedback": self.scoring.with_feedback,
            "without_feedback": self.scoring.without_feedback,
        }
        return data


def _read_yaml(path: Path) -> dict[str, Any]:
    if not path.exists():
        raise ConfigError(path, "File not found")

    yaml = YAML(typ="safe")
    try:
        with path.open("r", encoding="utf-8") as f:
            data = yaml.load(f)
    except Exception as e:
        raise ConfigError(path, str(e)) from e

    if data is None:
        raise ConfigError(path, "Empty file")
    if not isinstance(data, dict):
        raise ConfigError(path, "Top level must be a mapping")
    return data


def load_config(path: Path) -> EngineConfig:
    """Load engine configuration.

    Args:
        path: Path to stagegate.yaml, or to the directory containing it.

    Returns:
        EngineConfig instance.

    Raises:
        ConfigError: If config cannot be loaded.
    """
    config_path = path / CONFIG_FILENAME if path.is_dir() else path
    data = _read_yaml(config_path)
    try:
        return EngineConfig.from_dict(data, base_dir=config_path.parent)
    except (TypeError, ValueError) as e:
        raise ConfigError(config_path, str(e)) from e


def load_stage_catalog(path: Path) -> StageRegistry:
    """Load a stage registry from a YAML catalog.

    The file holds a ``stages`` list. Each entry needs ``id`` and ``title``;
    ``order`` defaults to the entry's position, ``counts_toward_budget``
    defaults to true, and ``requirements`` uses the same shape HTTP clients
    send (``type``, ``minValue``, ``requiredKeywords``...).

    Raises:
        ConfigError: If the file is missing, malformed, or the stages do not
            form a valid linear sequence.
    """
    data = _read_yaml(path)
    entries = data.get("stages")
    if not isinstance(entries, list) or not entries:
        raise ConfigError(path, "'stages' must be a non-empty list")

    stages: list[StageDefinition] = []
    for position, entry in enumerate(entries):
        if not isinstance(entry, dict) or not entry.get("id"):
            raise ConfigError(path, f"Stage #{position} needs an 'id'")
        stage_id = str(entry["id"])
        counts = entry.get("counts_toward_budget", True)
        if not isinstance(counts, bool):
            raise ConfigError(
                path, f"Stage {stage_id!r}: 'counts_toward_budget' must be true or false"
            )
        examples = entry.get("examples") or []
        if not isinstance(examples, list):
            raise ConfigError(path, f"Stage {stage_id!r}: 'examples' must be a list")
        try:
            stages.append(
                StageDefinition(
                    id=stage_id,
                    order=int(entry.get("order", position)),
                    title=str(entry.get("title", stage_id.replace("_", " ").title())),
                    requirements=tuple(parse_requirements(entry.get("requirements"))),
                    counts_toward_budget=counts,
                    description=str(entry.get("description", "")),
                    help_text=str(entry.get("help_text", "")),
                    examples=tuple(str(e) for e in examples),
                )
            )
        except (TypeError, ValueError) as e:
            raise ConfigError(path, f"Stage {stage_id!r}: {e}") from e

    try:
        return StageRegistry(stages)
    except ValueError as e:
        raise ConfigError(path, str(e)) from e


def build_registry(config: EngineConfig) -> StageRegistry:
    """Build the registry a config selects: its catalog file, or a built-in mode.

    Raises:
        ConfigError: If the catalog cannot be loaded or the mode is unknown.
    """
    if config.catalog is not None:
        return load_stage_catalog(config.catalog)

    mode = config.get_mode()
    if mode not in WRITING_MODES:
        raise ConfigError(
            Path(CONFIG_FILENAME),
            f"Unknown mode {mode!r}. Expected one of: {', '.join(WRITING_MODES)}",
        )
    return registry_for_mode(mode)


def create_default_config(
    name: str,
    mode: str = DEFAULT_MODE,
    word_limit: int | None = None,
) -> EngineConfig:
    """Create a default configuration.

    Args:
        name: Deployment or project name.
        mode: Built-in writing mode.
        word_limit: Optional default word limit.

    Returns:
        EngineConfig with default values.
    """
    return EngineConfig(name=name, mode=mode, word_limit=word_limit)
