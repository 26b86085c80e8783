"""Configuration management for reviewgate."""

from pathlib import Path
from typing import Optional, List, Dict, Any
from dataclasses import dataclass, field
import yaml
import json

from reviewgate.review.categorizer import Categorizer
from reviewgate.review.checks import DEFAULT_STAGE_TOOLS
from reviewgate.review.checks.token_savings import DEFAULT_THRESHOLD
from reviewgate.review.external import DEFAULT_COMMAND, DEFAULT_TIMEOUT
from reviewgate.review.models import DiffScope

CONFIG_DIR = ".reviewgate"

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class DiffConfig:
    """Where changes are read from."""

    base_ref: str = "main"
    scopes: List[str] = field(default_factory=lambda: ["branch"])


@dataclass
class StagesConfig:
    """Stage tool requirements and documentation paths."""

    # stage id -> tools it needs; a stage missing a tool is skipped
    tools: Dict[str, List[str]] = field(
        default_factory=lambda: {k: list(v) for k, v in DEFAULT_STAGE_TOOLS.items()}
    )
    extra_tools: List[str] = field(default_factory=list)  # probed and reported only
    changelog_path: str = "CHANGELOG.md"
    readme_path: str = "README.md"


@dataclass
class TokenSavingsConfig:
    """Token savings estimator settings."""

    threshold: float = DEFAULT_THRESHOLD  # percent


@dataclass
class ExternalReviewerConfig:
    """Second-opinion reviewer settings."""

    enabled: bool = True
    command: List[str] = field(default_factory=lambda: list(DEFAULT_COMMAND))
    timeout: float = DEFAULT_TIMEOUT  # seconds


@dataclass
class CompressionConfig:
    """Compression actuator; empty command means compression is not set up."""

    command: List[str] = field(default_factory=list)


@dataclass
class LoggingConfig:
    level: str = "WARNING"
    json_format: bool = False


@dataclass
class ToolsConfig:
    """Tool probe overrides, e.g. ``force: {gh: false}``."""

    force: Dict[str, bool] = field(default_factory=dict)


@dataclass
class Config:
    """reviewgate configuration."""

    project_name: str
    project_path: Path
    categories: List[Dict[str, str]] = field(default_factory=list)  # empty = built-in rules
    diff: DiffConfig = field(default_factory=DiffConfig)
    stages: StagesConfig = field(default_factory=StagesConfig)
    token_savings: TokenSavingsConfig = field(default_factory=TokenSavingsConfig)
    external: ExternalReviewerConfig = field(default_factory=ExternalReviewerConfig)
    compression: CompressionConfig = field(default_factory=CompressionConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    tools: ToolsConfig = field(default_factory=ToolsConfig)

    def __post_init__(self):
        self.project_path = Path(self.project_path).resolve()

    @property
    def reviewgate_dir(self) -> Path:
        """Get .reviewgate directory path."""
        return self.project_path / CONFIG_DIR

    @property
    def config_file(self) -> Path:
        return self.reviewgate_dir / "config.yaml"

    @property
    def diff_scopes(self) -> List[DiffScope]:
        return [DiffScope(s) for s in self.diff.scopes]

    def categorizer(self) -> Categorizer:
        if not self.categories:
            return Categorizer()
        return Categorizer.from_config(self.categories)

    def validate(self) -> None:
        """Validate configuration values.

        Raises:
            ValueError: On the first invalid value found.
        """
        if not self.diff.scopes:
            raise ValueError("diff.scopes must name at least one scope")
        for scope in self.diff.scopes:
            try:
                DiffScope(scope)
            except ValueError:
                raise ValueError(
                    f"Unknown diff scope '{scope}' (expected branch, pr or commit)"
                ) from None

        if not (0.0 <= self.token_savings.threshold <= 100.0):
            raise ValueError("token_savings.threshold must be between 0 and 100")

        if self.external.timeout <= 0:
            raise ValueError("external.timeout must be positive")
        if self.external.enabled and not self.external.command:
            raise ValueError("external.command must not be empty when enabled")

        if self.logging.level.upper() not in _LOG_LEVELS:
            raise ValueError(f"logging.level must be one of {', '.join(_LOG_LEVELS)}")

        for stage_id, tools in self.stages.tools.items():
            if not isinstance(tools, list):
                raise ValueError(f"stages.tools.{stage_id} must be a list")

        # Raises ValueError on unknown categories
        self.categorizer()

    @classmethod
    def load(cls, project_path: Path) -> "Config":
        """Load configuration from .reviewgate/config.yaml or config.json."""
        project_path = Path(project_path).resolve()
        config_yaml = project_path / CONFIG_DIR / "config.yaml"
        config_json = project_path / CONFIG_DIR / "config.json"

        if config_yaml.exists():
            with open(config_yaml) as f:
                data = yaml.safe_load(f) or {}
        elif config_json.exists():
            with open(config_json) as f:
                data = json.load(f)
        else:
            raise FileNotFoundError(
                f"Config not found in {project_path}. Run 'reviewgate config init' first."
            )

        return cls.from_dict(project_path, data)

    @classmethod
    def load_or_default(cls, project_path: Path) -> "Config":
        """Load configuration, falling back to defaults when none exists."""
        try:
            return cls.load(project_path)
        except FileNotFoundError:
            project_path = Path(project_path).resolve()
            return cls(project_name=project_path.name, project_path=project_path)

    @classmethod
    def from_dict(cls, project_path: Path, data: Dict[str, Any]) -> "Config":
        data = dict(data)
        data.setdefault("project_name", Path(project_path).resolve().name)

        # Build nested configs
        diff_data = data.pop("diff", {}) or {}
        stages_data = data.pop("stages", {}) or {}
        token_data = data.pop("token_savings", {}) or {}
        external_data = data.pop("external", {}) or {}
        compression_data = data.pop("compression", {}) or {}
        logging_data = data.pop("logging", {}) or {}
        tools_data = data.pop("tools", {}) or {}

        try:
            return cls(
                project_path=project_path,
                diff=DiffConfig(**diff_data),
                stages=StagesConfig(**stages_data),
                token_savings=TokenSavingsConfig(**token_data),
                external=ExternalReviewerConfig(**external_data),
                compression=CompressionConfig(**compression_data),
                logging=LoggingConfig(**logging_data),
                tools=ToolsConfig(**tools_data),
                **data,
            )
        except TypeError as e:
            raise ValueError(f"Invalid configuration: {e}") from e

    def to_dict(self) -> Dict[str, Any]:
        return {
            "project_name": self.project_name,
            "categories": self.categories,
            "diff": {
                "base_ref": self.diff.base_ref,
                "scopes": self.diff.scopes,
            },
            "stages": {
                "tools": self.stages.tools,
                "extra_tools": self.stages.extra_tools,
                "changelog_path": self.stages.changelog_path,
                "readme_path": self.stages.readme_path,
            },
            "token_savings": {
                "threshold": self.token_savings.threshold,
            },
            "external": {
                "enabled": self.external.enabled,
                "command": self.external.command,
                "timeout": self.external.timeout,
            },
            "compression": {
                "command": self.compression.command,
            },
            "logging": {
                "level": self.logging.level,
                "json_format": self.logging.json_format,
            },
            "tools": {
                "force": self.tools.force,
            },
        }

    def save(self) -> None:
        """Save configuration to .reviewgate/config.yaml."""
        self.reviewgate_dir.mkdir(parents=True, exist_ok=True)
        with open(self.config_file, "w") as f:
            yaml.dump(self.to_dict(), f, default_flow_style=False, sort_keys=False)


def initialize_project(project_path: Path, base_ref: Optional[str] = None) -> Config:
    """Write a default .reviewgate/config.yaml.

    Args:
        project_path: Path to the repository root
        base_ref: Branch that changes are compared against

    Returns:
        Initialized Config object
    """
    project_path = Path(project_path).resolve()
    config = Config(project_name=project_path.name, project_path=project_path)
    if base_ref:
        config.diff.base_ref = base_ref
    config.save()
    return config
