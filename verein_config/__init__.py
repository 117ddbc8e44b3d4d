"""
verein_config -- single public entrypoint for billing configuration.

Responsibility:
    Provides the ONLY way to obtain configuration at runtime through
    ``get_active_config()``.  Services receive the returned
    ``BillingConfig``; they never read YAML files themselves.

Architecture position:
    Configuration -- YAML-driven, validated before use.
    Sits above ``verein_kernel`` / ``verein_engines`` and below
    ``verein_modules``.  Neither the kernel nor the engines import from
    this package.

Invariants enforced:
    - Single entrypoint: all runtime config flows through
      ``get_active_config()``.
    - A configuration that fails validation is never returned.

Failure modes:
    - ``FileNotFoundError`` -- the configuration file does not exist.
    - ``ConfigValidationError`` -- missing keys, malformed values or
      validation errors.

Audit relevance:
    Every successful ``get_active_config()`` call emits a
    ``VEREIN_CONFIG_TRACE`` log entry containing the config_id, version
    and checksum, tying each generated invoice and SEPA batch back to the
    configuration that governed it.
"""

from __future__ import annotations

import logging
from pathlib import Path

import yaml

from verein_config.loader import load_billing_config
from verein_config.schema import BillingConfig
from verein_config.validator import ConfigValidationResult, validate_configuration
from verein_kernel.exceptions import ConfigValidationError

_logger = logging.getLogger("verein.config")

# Default configuration file
_DEFAULT_CONFIG_PATH = Path(__file__).parent / "sets" / "default.yaml"

TRACE_TYPE = "VEREIN_CONFIG_TRACE"


def get_active_config(path: Path | str | None = None) -> BillingConfig:
    """The ONLY public configuration entrypoint.

    Args:
        path: Override path to a configuration YAML file.  Defaults to
            verein_config/sets/default.yaml.

    Returns:
        A validated, frozen BillingConfig.

    Raises:
        FileNotFoundError: If the file does not exist.
        ConfigValidationError: If the file cannot be parsed into a
            configuration or the configuration fails validation.
    """
    config_path = Path(path) if path is not None else _DEFAULT_CONFIG_PATH

    try:
        config = load_billing_config(config_path)
    except FileNotFoundError:
        raise
    except KeyError as exc:
        raise ConfigValidationError([f"missing required key: {exc.args[0]}"]) from exc
    except (ValueError, TypeError, AttributeError, yaml.YAMLError) as exc:
        raise ConfigValidationError([str(exc)]) from exc

    validation = validate_configuration(config)
    if not validation.is_valid:
        raise ConfigValidationError(validation.errors)

    for warning in validation.warnings:
        _logger.warning("config_validation_warning", extra={"warning": warning})

    _logger.info(
        TRACE_TYPE,
        extra={
            "trace_type": TRACE_TYPE,
            "config_id": config.config_id,
            "config_version": config.version,
            "checksum": config.checksum,
            "association_name": config.association_name,
            "config_path": str(config_path),
        },
    )

    return config


__all__ = [
    "BillingConfig",
    "ConfigValidationResult",
    "get_active_config",
    "validate_configuration",
]
