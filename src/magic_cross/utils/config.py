"""Configuration management for the MAGIC cross builder."""

from __future__ import annotations

import os
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any

import yaml

DEFAULT_SERVER = "http://mtweb.cs.ucl.ac.uk/mus/www/magic"

DEFAULT_DESCRIPTION = (
    "Arabidopsis MAGIC lines (Kover et al. 2009), genotyped at SNP markers "
    "and remapped to TAIR9/TAIR10"
)


@dataclass
class SourceConfig:
    """Where the HAPPY archive comes from."""

    base_url: str = DEFAULT_SERVER
    archive_name: str = "MAGIC.happy.tar.gz"
    timeout: float = 120.0
    chunk_size: int = 1 << 16

    @property
    def url(self) -> str:
        """Full archive URL."""
        return f"{self.base_url.rstrip('/')}/{self.archive_name}"


@dataclass
class ParserConfig:
    """Settings for reading the HAPPY text files."""

    missing_tokens: list[str] = field(default_factory=lambda: ["NA", "0", "N", "-", "."])
    metadata_columns: int = 5
    uninformative_strains: int = 19
    probability_decimals: int = 3

    @property
    def uninformative_probability(self) -> float:
        """Missing-row value flagging a marker as uninformative."""
        return round(1 / self.uninformative_strains, self.probability_decimals)


@dataclass
class CrossConfig:
    """Settings for the exported cross dataset."""

    name: str = "kover2009"
    description: str = DEFAULT_DESCRIPTION
    crosstype: str = "magic19"
    reference_strain: str = "Col-0"
    sep: str = ","
    comment_char: str = "#"
    na_string: str = "NA"
    geno_file: str = "geno.csv"
    founder_geno_file: str = "founder_geno.csv"
    gmap_file: str = "gmap.csv"
    pmap_file: str = "pmap.csv"
    happy_prefix: str = "magic"


@dataclass
class PipelineConfig:
    """Main pipeline configuration."""

    work_dir: str = "work"
    output_dir: str = "results"
    log_dir: str | None = None
    keep_work_dir: bool = False

    source: SourceConfig = field(default_factory=SourceConfig)
    parser: ParserConfig = field(default_factory=ParserConfig)
    cross: CrossConfig = field(default_factory=CrossConfig)


_SECTIONS = ("source", "parser", "cross")


class Config:
    """Configuration manager for the MAGIC cross builder."""

    def __init__(self, config_path: str | Path | None = None) -> None:
        """
        Initialize configuration.

        Args:
            config_path: Path to YAML configuration file.
                        If None, uses default configuration.
        """
        self._config = PipelineConfig()
        if config_path is not None:
            self.load(config_path)

    @property
    def pipeline(self) -> PipelineConfig:
        """Get the pipeline configuration."""
        return self._config

    @property
    def source(self) -> SourceConfig:
        """Get archive source configuration."""
        return self._config.source

    @property
    def parser(self) -> ParserConfig:
        """Get parser configuration."""
        return self._config.parser

    @property
    def cross(self) -> CrossConfig:
        """Get cross export configuration."""
        return self._config.cross

    def load(self, config_path: str | Path) -> None:
        """
        Load configuration from a YAML file.

        Args:
            config_path: Path to the configuration file.

        Raises:
            FileNotFoundError: If the configuration file does not exist.
            ValueError: If the configuration file is invalid.
        """
        config_path = Path(config_path)
        if not config_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        with open(config_path, encoding="utf-8") as f:
            data = yaml.safe_load(f)

        if data is None:
            raise ValueError(f"Empty configuration file: {config_path}")
        if not isinstance(data, dict):
            raise ValueError(f"Configuration must be a mapping: {config_path}")

        self._update_config(data)

    def _update_config(self, data: dict[str, Any]) -> None:
        """Update configuration from dictionary."""
        for key, value in data.items():
            if key in _SECTIONS and isinstance(value, dict):
                section = getattr(self._config, key)
                for sub_key, sub_value in value.items():
                    if hasattr(section, sub_key):
                        setattr(section, sub_key, sub_value)
            elif key not in _SECTIONS and hasattr(self._config, key):
                setattr(self._config, key, value)

    def save(self, config_path: str | Path) -> None:
        """
        Save current configuration to a YAML file.

        Args:
            config_path: Path to save the configuration.
        """
        config_path = Path(config_path)
        config_path.parent.mkdir(parents=True, exist_ok=True)

        with open(config_path, "w", encoding="utf-8") as f:
            yaml.dump(self._to_dict(), f, default_flow_style=False, sort_keys=False)

    def _to_dict(self) -> dict[str, Any]:
        """Convert configuration to dictionary."""
        return asdict(self._config)

    def validate(self) -> list[str]:
        """
        Validate the configuration.

        Returns:
            List of validation error messages. Empty if valid.
        """
        errors = []

        if not self.source.base_url.startswith(("http://", "https://")):
            errors.append(f"base_url must be an HTTP(S) URL: {self.source.base_url}")

        if self.source.timeout <= 0:
            errors.append("source timeout must be positive")

        if self.source.chunk_size <= 0:
            errors.append("source chunk_size must be positive")

        if self.parser.metadata_columns < 0:
            errors.append("metadata_columns must not be negative")

        if self.parser.uninformative_strains <= 0:
            errors.append("uninformative_strains must be positive")

        if not self.cross.reference_strain:
            errors.append("reference_strain must be set")

        if len(self.cross.sep) != 1:
            errors.append("cross sep must be a single character")

        return errors

    @classmethod
    def from_env(cls) -> Config:
        """
        Create configuration from environment variables.

        Environment variables should be prefixed with MAGIC_.

        Returns:
            Config instance with values from environment.
        """
        config = cls()

        env_mappings = {
            "MAGIC_WORK_DIR": ("work_dir", str),
            "MAGIC_OUTPUT_DIR": ("output_dir", str),
            "MAGIC_KEEP_WORK_DIR": ("keep_work_dir", lambda x: x.lower() == "true"),
            "MAGIC_BASE_URL": ("source.base_url", str),
            "MAGIC_ARCHIVE": ("source.archive_name", str),
            "MAGIC_REFERENCE_STRAIN": ("cross.reference_strain", str),
        }

        for env_var, (attr_path, converter) in env_mappings.items():
            value = os.environ.get(env_var)
            if value is not None:
                parts = attr_path.split(".")
                if len(parts) == 1:
                    setattr(config._config, parts[0], converter(value))
                else:
                    sub_config = getattr(config._config, parts[0])
                    setattr(sub_config, parts[1], converter(value))

        return config


def load_config(config_path: str | Path | None = None) -> Config:
    """
    Load configuration from the environment and an optional file.

    ``MAGIC_*`` environment variables are applied first; values set in the
    file take precedence over them.

    Args:
        config_path: Optional path to configuration file.

    Returns:
        Loaded configuration.
    """
    config = Config.from_env()
    if config_path is not None:
        config.load(config_path)
    return config
