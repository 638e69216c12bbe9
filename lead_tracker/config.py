"""Configuration helpers for field settings, users, and import defaults."""
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, Iterable

import yaml

from .models import Assignee, AssigneeDirectory

LOGGER = logging.getLogger(__name__)


class ConfigurationError(RuntimeError):
    """Raised when configuration files are missing or malformed."""


_SUPPORTED_EXTENSIONS = {".json", ".yaml", ".yml"}


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
            data = json.loads(text)
        except json.JSONDecodeError as exc:
            raise ConfigurationError(f"Configuration file '{file_path}' is not valid JSON: {exc}") from exc
    else:
        try:
            data = yaml.safe_load(text)
        except yaml.YAMLError as exc:
            raise ConfigurationError(f"Configuration file '{file_path}' is not valid YAML: {exc}") from exc

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"Configuration file '{file_path}' must contain a mapping at the top level")
    return data


def iter_user_configs(config: Dict[str, Any]) -> Iterable[Dict[str, Any]]:
    users = config.get("users", []) or []
    for user in users:
        if not isinstance(user, dict) or not user.get("id"):
            raise ConfigurationError(f"User entries require an 'id' field, got {user!r}")
        if user.get("active", True):
            yield user
        else:
            LOGGER.debug("Skipping inactive user %s", user.get("id"))


def build_assignee_directory(config: Dict[str, Any]) -> AssigneeDirectory:
    """Build the id/name lookup used to assign imported leads and label exports."""

    assignees = [
        Assignee(id=str(user["id"]), name=str(user.get("name") or user["id"]))
        for user in iter_user_configs(config)
    ]
    return AssigneeDirectory(assignees)


def default_assignee(config: Dict[str, Any]) -> str:
    """Return the user id imported leads are assigned to unless a row names one."""

    value = config.get("default_assignee")
    return str(value) if value is not None else ""
