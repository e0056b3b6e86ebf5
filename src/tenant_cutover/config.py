"""Configuration for store access and migration phase flags."""

from __future__ import annotations

import os
import re
from dataclasses import dataclass

from .exceptions import ConfigurationError

DEFAULT_TABLE_NAME = "tenant-cutover"
TABLE_ENV_VAR = "CUTOVER_TABLE_NAME"

DEFAULT_MODULE_ID = "trainingTrack"
MODULE_ENV_VAR = "CUTOVER_MODULE"

# DynamoDB table naming rules
TABLE_NAME_PATTERN = re.compile(r"^[A-Za-z0-9_.-]{3,255}$")


def parse_bool(setting: str, raw: str | None, default: bool) -> bool:
    """
    Parse a strict boolean flag.

    Args:
        setting: Name of the setting (for error messages)
        raw: Raw value, or None if unset
        default: Value used when the setting is unset

    Raises:
        ConfigurationError: If the value is neither 'true' nor 'false'
    """
    if raw is None:
        return default
    value = raw.strip().lower()
    if value not in ("true", "false"):
        raise ConfigurationError(setting, "must be 'true' or 'false'")
    return value == "true"


@dataclass(frozen=True)
class StoreConfig:
    """
    Location of the document store.

    Built once at process start and passed to the store constructor;
    credentials themselves resolve through the AWS SDK chain (optionally
    pinned to a named profile).
    """

    table_name: str = DEFAULT_TABLE_NAME
    region: str | None = None
    endpoint_url: str | None = None
    profile_name: str | None = None

    def __post_init__(self) -> None:
        if not TABLE_NAME_PATTERN.match(self.table_name or ""):
            raise ConfigurationError(
                "table_name",
                f"{self.table_name!r} must be 3-255 characters of letters, digits, '_', '.', '-'",
            )

    @classmethod
    def from_environment(cls) -> StoreConfig:
        """Create StoreConfig from environment variables."""
        return cls(
            table_name=os.environ.get(TABLE_ENV_VAR, DEFAULT_TABLE_NAME),
            region=os.environ.get("AWS_REGION") or os.environ.get("AWS_DEFAULT_REGION"),
            endpoint_url=os.environ.get("AWS_ENDPOINT_URL") or None,
            profile_name=os.environ.get("AWS_PROFILE") or None,
        )


@dataclass(frozen=True)
class PhaseFlags:
    """
    The three migration-phase flags read by the path resolver.

    Defaults describe the terminal phase: module-only writes, module reads.
    """

    dual_write: bool = False
    read_from_modules: bool = True
    legacy_write_disabled: bool = True

    def __post_init__(self) -> None:
        if self.legacy_write_disabled and not self.read_from_modules:
            raise ConfigurationError(
                "phase flags",
                "reads cannot come from legacy paths once legacy writes are disabled",
            )

    @staticmethod
    def env_prefix(module_id: str) -> str:
        """Environment variable prefix for a module (e.g. FF_TRAININGTRACK)."""
        return f"FF_{module_id.upper()}"

    @classmethod
    def from_environment(cls, module_id: str = DEFAULT_MODULE_ID) -> PhaseFlags:
        """Create PhaseFlags from FF_{MODULE}_* environment variables."""
        prefix = cls.env_prefix(module_id)
        names = {
            "dual_write": f"{prefix}_DUAL_WRITE",
            "read_from_modules": f"{prefix}_READ_FROM_MODULES",
            "legacy_write_disabled": f"{prefix}_LEGACY_WRITE_DISABLED",
        }
        return cls(
            dual_write=parse_bool(names["dual_write"], os.environ.get(names["dual_write"]), False),
            read_from_modules=parse_bool(
                names["read_from_modules"], os.environ.get(names["read_from_modules"]), True
            ),
            legacy_write_disabled=parse_bool(
                names["legacy_write_disabled"],
                os.environ.get(names["legacy_write_disabled"]),
                True,
            ),
        )


def module_id_from_environment() -> str:
    """Module selected by CUTOVER_MODULE (default trainingTrack)."""
    return os.environ.get(MODULE_ENV_VAR) or DEFAULT_MODULE_ID
