"""Configuration models using simple dataclasses."""

import logging
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Optional, Type

import yaml

from .lexicon import Lexicon, join_lexicon, split_lexicon

logger = logging.getLogger(__name__)

_DEFAULT_LEXICON = Lexicon()


def _default_lexicon(name: str):
    return field(default_factory=lambda: join_lexicon(_DEFAULT_LEXICON.get(name)))


@dataclass
class LexiconConfig:
    """Lexicons as "|"-joined strings, the way they are edited and persisted."""

    splitters: str = _default_lexicon("splitters")
    featuring: str = _default_lexicon("featuring")
    remix: str = _default_lexicon("remix")
    remix_by: str = _default_lexicon("remix_by")
    remix_optional: str = _default_lexicon("remix_optional")
    cap_keep_upper: str = _default_lexicon("cap_keep_upper")
    cap_keep_lower: str = _default_lexicon("cap_keep_lower")
    clean_title_phrases: str = _default_lexicon("clean_title_phrases")

    def to_lexicon(self) -> Lexicon:
        return Lexicon.from_strings(asdict(self))

    @classmethod
    def from_lexicon(cls, lexicon: Lexicon) -> "LexiconConfig":
        return cls(**lexicon.to_strings())


@dataclass
class ExtractionConfig:
    """What extraction removes from the title once it is captured."""

    remove_main_artist_from_title: bool = True
    remove_feat_from_title: bool = True
    remove_remix_credit_from_title: bool = True


@dataclass
class HistoryConfig:
    """Undo history settings."""

    max_actions: int = 50
    removal_retry_attempts: int = 4
    removal_retry_delay_seconds: float = 0.14


@dataclass
class AdapterConfig:
    """Waiting on the host form."""

    structural_timeout_seconds: float = 6.0
    poll_interval_seconds: float = 0.1
    row_timeout_seconds: float = 10.0


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str = "INFO"
    file_path: str = "edit_helper.log"
    max_file_size_mb: int = 10
    backup_count: int = 3
    console_output: bool = True


@dataclass
class UIConfig:
    """User interface configuration."""

    idle_timeout_seconds: int = 60
    start_collapsed: bool = False
    show_progress_bar: bool = True


@dataclass
class HelperConfig:
    """Main configuration model."""

    lexicons: LexiconConfig = field(default_factory=LexiconConfig)
    extraction: ExtractionConfig = field(default_factory=ExtractionConfig)
    history: HistoryConfig = field(default_factory=HistoryConfig)
    adapter: AdapterConfig = field(default_factory=AdapterConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    ui: UIConfig = field(default_factory=UIConfig)


def _filter_fields(data: Dict[str, Any], cls: Type[Any]) -> Dict[str, Any]:
    """Return only keys present on the dataclass to avoid TypeErrors."""
    valid_fields = cls.__dataclass_fields__.keys()
    return {k: v for k, v in data.items() if k in valid_fields}


def _section(config_data: Dict[str, Any], name: str) -> Dict[str, Any]:
    section = config_data.get(name) or {}
    if not isinstance(section, dict):
        raise ValueError(f"Section '{name}' must be a mapping, got {type(section).__name__}")
    return section


def _load_lexicons(data: Dict[str, Any]) -> LexiconConfig:
    """Accept both "|"-joined strings and YAML lists; empty values keep the default."""
    defaults = LexiconConfig()
    values = {}
    for f in fields(LexiconConfig):
        if f.name not in data:
            continue
        entries = split_lexicon(data[f.name])
        if not entries:
            logger.warning(f"Lexicon '{f.name}' is empty in configuration, keeping defaults")
            continue
        values[f.name] = join_lexicon(entries)
    unknown = set(data) - {f.name for f in fields(LexiconConfig)}
    for name in sorted(unknown):
        logger.warning(f"Ignoring unknown lexicon '{name}' in configuration")
    return LexiconConfig(**{**asdict(defaults), **values})


def validate_config(cfg: HelperConfig) -> None:
    """Validation with bounds checking."""
    # History validation
    if not (1 <= cfg.history.max_actions <= 1000):
        raise ValueError("history.max_actions must be between 1 and 1000")
    if not (1 <= cfg.history.removal_retry_attempts <= 20):
        raise ValueError("history.removal_retry_attempts must be between 1 and 20")
    if not (0 <= cfg.history.removal_retry_delay_seconds <= 10):
        raise ValueError("history.removal_retry_delay_seconds must be between 0 and 10")

    # Adapter validation
    if not (0.1 <= cfg.adapter.structural_timeout_seconds <= 300):
        raise ValueError("adapter.structural_timeout_seconds must be between 0.1 and 300")
    if not (0.01 <= cfg.adapter.poll_interval_seconds <= 10):
        raise ValueError("adapter.poll_interval_seconds must be between 0.01 and 10")
    if cfg.adapter.poll_interval_seconds > cfg.adapter.structural_timeout_seconds:
        raise ValueError("adapter.poll_interval_seconds cannot exceed structural_timeout_seconds")
    if not (0.1 <= cfg.adapter.row_timeout_seconds <= 3600):
        raise ValueError("adapter.row_timeout_seconds must be between 0.1 and 3600")

    # UI validation
    if not (0 <= cfg.ui.idle_timeout_seconds <= 86400):
        raise ValueError("ui.idle_timeout_seconds must be between 0 and 86400")

    # Lexicon validation
    for f in fields(LexiconConfig):
        if not split_lexicon(getattr(cfg.lexicons, f.name)):
            raise ValueError(f"lexicons.{f.name} must contain at least one entry")

    # Logging validation
    if not (1 <= cfg.logging.max_file_size_mb <= 1000):  # 1MB to 1GB
        raise ValueError("max_file_size_mb must be between 1 and 1000 MB")
    if not (0 <= cfg.logging.backup_count <= 100):
        raise ValueError("backup_count must be between 0 and 100")

    valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
    if cfg.logging.level.upper() not in valid_levels:
        raise ValueError(f"logging.level must be one of: {valid_levels}")


def load_config(config_path: Optional[str] = None) -> HelperConfig:
    """Load configuration from YAML file or return defaults."""
    if config_path and Path(config_path).exists():
        try:
            with open(config_path, "r", encoding="utf-8") as f:
                config_data = yaml.safe_load(f)

            # Handle None/empty/non-dict configs
            if config_data is None:
                logger.warning(f"Configuration file {config_path} is empty, using defaults")
                config_data = {}
            elif not isinstance(config_data, dict):
                raise ValueError(
                    f"Configuration file must contain a dictionary, got {type(config_data).__name__}"
                )

        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in configuration file {config_path}: {e}")
        except (IOError, OSError) as e:
            raise ValueError(f"Cannot read configuration file {config_path}: {e}")

        try:
            cfg = HelperConfig(
                lexicons=_load_lexicons(_section(config_data, "lexicons")),
                extraction=ExtractionConfig(
                    **_filter_fields(_section(config_data, "extraction"), ExtractionConfig)
                ),
                history=HistoryConfig(
                    **_filter_fields(_section(config_data, "history"), HistoryConfig)
                ),
                adapter=AdapterConfig(
                    **_filter_fields(_section(config_data, "adapter"), AdapterConfig)
                ),
                logging=LoggingConfig(
                    **_filter_fields(_section(config_data, "logging"), LoggingConfig)
                ),
                ui=UIConfig(**_filter_fields(_section(config_data, "ui"), UIConfig)),
            )
        except (TypeError, ValueError) as e:
            raise ValueError(f"Invalid configuration values in {config_path}: {e}")

        validate_config(cfg)
        return cfg
    cfg = HelperConfig()
    validate_config(cfg)
    return cfg


def save_config(cfg: HelperConfig, output_path: str) -> None:
    """Write the configuration as YAML."""
    validate_config(cfg)
    Path(output_path).parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, "w", encoding="utf-8") as f:
        yaml.dump(asdict(cfg), f, default_flow_style=False, indent=2, allow_unicode=True)
    logger.info(f"Configuration saved to {output_path}")


def save_config_template(output_path: str = "config_template.yaml"):
    """Save a template configuration file."""
    config = HelperConfig()
    config_dict = asdict(config)

    with open(output_path, "w", encoding="utf-8") as f:
        yaml.dump(config_dict, f, default_flow_style=False, indent=2)

    print(f"Configuration template saved to: {output_path}")
