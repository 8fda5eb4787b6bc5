"""Handles loading configuration from YAML files."""

import yaml
import os
import logging
from dataclasses import dataclass, field
from typing import List, Optional

from .exceptions import ConfigurationError
from .models import CorrectionFactor, RoundingMode

logger = logging.getLogger(__name__)

@dataclass(frozen=True)
class Settings:
    """Read-only configuration shared by every conversion of a run."""
    correction_factor: CorrectionFactor = field(default_factory=CorrectionFactor)
    language: Optional[str] = "eng"
    rounding: RoundingMode = RoundingMode.HALF_UP
    audio_codec: str = "libvorbis"
    audio_quality: float = 6
    resample_to_source_rate: bool = False
    temp_dir: Optional[str] = None
    output_subdir: str = "Fixed"
    batch_extensions: List[str] = field(default_factory=lambda: [".mkv"])
    mkvmerge_path: Optional[str] = None
    mkvextract_path: Optional[str] = None
    ffmpeg_path: Optional[str] = None
    ffprobe_path: Optional[str] = None
    log_dir: str = "logs"
    log_file: str = "palfix.log"


def build_settings(config: dict) -> Settings:
    """
    Turns a raw configuration mapping into Settings.

    Unknown keys are ignored with a warning; missing keys keep their defaults.

    Raises:
        ConfigurationError: If a value has the wrong shape.
    """
    known = set(Settings.__dataclass_fields__)
    unknown = sorted(set(config) - known)
    if unknown:
        logger.warning(f"Ignoring unknown configuration keys: {', '.join(unknown)}")
    values = {key: value for key, value in config.items() if key in known}

    if "correction_factor" in values:
        factor = values["correction_factor"]
        if not isinstance(factor, CorrectionFactor):
            values["correction_factor"] = CorrectionFactor.parse(factor)
    if "rounding" in values:
        try:
            values["rounding"] = RoundingMode(values["rounding"])
        except ValueError as e:
            choices = ", ".join(mode.value for mode in RoundingMode)
            raise ConfigurationError(f"Invalid rounding mode {values['rounding']!r}; expected one of: {choices}") from e
    if "language" in values:
        values["language"] = str(values["language"]).strip() if values["language"] else None
    if "batch_extensions" in values:
        extensions = values["batch_extensions"] or []
        if not isinstance(extensions, list) or not all(isinstance(ext, str) and ext for ext in extensions):
            raise ConfigurationError("'batch_extensions' must be a list of file extensions.")
        values["batch_extensions"] = [ext.lower() if ext.startswith(".") else f".{ext.lower()}" for ext in extensions]
    if "audio_quality" in values:
        try:
            values["audio_quality"] = float(values["audio_quality"])
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"'audio_quality' must be a number, got {values['audio_quality']!r}") from e

    return Settings(**values)


class ConfigLoader:
    """Loads configuration settings from a YAML file."""

    def load_config(self, config_path: str) -> dict:
        """
        Loads configuration from the specified YAML file path.

        Args:
            config_path: The path to the YAML configuration file.

        Returns:
            A dictionary containing the loaded configuration settings.
            An empty file yields an empty dictionary.

        Raises:
            FileNotFoundError: If the configuration file does not exist.
            ConfigurationError: If the file cannot be parsed as YAML or
                              if there are other reading errors.
        """
        logger.info(f"Attempting to load configuration from: {config_path}")
        if not os.path.exists(config_path):
            logger.error(f"Configuration file not found at path: {config_path}")
            raise FileNotFoundError(f"Configuration file not found: {config_path}")
        if not os.path.isfile(config_path):
             logger.error(f"Configuration path is not a file: {config_path}")
             raise ConfigurationError(f"Configuration path is not a file: {config_path}")

        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            logger.error(f"Error parsing YAML configuration file {config_path}: {e}", exc_info=True)
            raise ConfigurationError(f"Invalid YAML format in {config_path}: {e}") from e
        except IOError as e:
            logger.error(f"Error reading configuration file {config_path}: {e}", exc_info=True)
            raise ConfigurationError(f"Could not read configuration file {config_path}: {e}") from e

        if config is None:
            return {}
        if not isinstance(config, dict):
            logger.error(f"Configuration file {config_path} did not load as a dictionary (root object).")
            raise ConfigurationError(f"Invalid YAML structure in {config_path}. Root must be a mapping (dictionary).")
        logger.info(f"Configuration loaded successfully from {config_path}")
        return config

    def load_settings(self, config_path: str) -> Settings:
        return build_settings(self.load_config(config_path))
