"""Shared setup logic for CLI commands."""

from __future__ import annotations

import click

from panelsearch.core.config import Config
from panelsearch.core.exceptions import ConfigurationError
from panelsearch.core.utils.logging import setup_logging


def setup_from_options(config_file: str | None, log_level: str | None) -> Config:
    """Load configuration and configure logging for a CLI run."""
    try:
        config = Config(config_file=config_file)
    except ConfigurationError as e:
        raise click.UsageError(str(e)) from e
    setup_logging(level=log_level or config.get("logging.level", "WARNING"), log_file=config.get("logging.file"))
    return config


def build_service(config: Config):
    """Create a SearchService from the CLI configuration."""
    from panelsearch.service import SearchService

    try:
        return SearchService.from_config(config)
    except ConfigurationError as e:
        raise click.UsageError(str(e)) from e
