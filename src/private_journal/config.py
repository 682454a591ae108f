"""Configuration loading for the private journal.

Settings come from three places, later ones winning:
1. Built-in defaults (project journal under the project root, user journal in ~)
2. An optional .toml or .json file in the project root
3. Environment variables (JOURNAL_*, REMOTE_JOURNAL_*)
"""

from __future__ import annotations

import json
import os
import tomllib
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Mapping, Optional

from .embeddings import DEFAULT_EMBEDDING_MODEL

JOURNAL_DIR_NAME = ".private-journal"
DEFAULT_REMOTE_TIMEOUT = 30.0


@dataclass(frozen=True)
class RemoteConfig:
    """Connection settings for the remote journal server. Immutable."""
    server_url: str
    team_id: str
    api_key: str
    enabled: bool = True
    remote_only: bool = False


def _is_true(value: Optional[str]) -> bool:
    return value is not None and value.strip().lower() == "true"


def create_remote_config(environ: Optional[Mapping[str, str]] = None) -> Optional[RemoteConfig]:
    """Build RemoteConfig from REMOTE_JOURNAL_* environment variables.

    Returns None unless server URL, team ID and API key are all set.
    """
    env = os.environ if environ is None else environ
    server_url = env.get("REMOTE_JOURNAL_SERVER_URL")
    team_id = env.get("REMOTE_JOURNAL_TEAMID")
    api_key = env.get("REMOTE_JOURNAL_APIKEY")

    if not server_url or not team_id or not api_key:
        return None

    return RemoteConfig(
        server_url=server_url.rstrip("/"),
        team_id=team_id,
        api_key=api_key,
        enabled=True,
        remote_only=_is_true(env.get("REMOTE_JOURNAL_ONLY")),
    )


def resolve_user_journal_path() -> Path:
    """~/.private-journal"""
    return Path.home() / JOURNAL_DIR_NAME


def resolve_project_journal_path(project_root: Optional[Path] = None) -> Path:
    """<project_root>/.private-journal.

    A filesystem root is never used as a project (servers launched with
    cwd=/ are common); those fall back to ~/.private-journal/project.
    """
    root = (project_root or Path.cwd()).resolve()
    if root == Path(root.anchor):
        return resolve_user_journal_path() / "project"
    return root / JOURNAL_DIR_NAME


@dataclass
class JournalConfig:
    """Configuration for a journal engine."""

    project_journal_path: Path = field(default_factory=resolve_project_journal_path)
    user_journal_path: Path = field(default_factory=resolve_user_journal_path)

    embedding_model: str = DEFAULT_EMBEDDING_MODEL

    # None means remote disabled
    remote: Optional[RemoteConfig] = None
    remote_timeout: float = DEFAULT_REMOTE_TIMEOUT

    debug: bool = False

    @property
    def remote_enabled(self) -> bool:
        return self.remote is not None and self.remote.enabled

    @property
    def remote_only(self) -> bool:
        return self.remote_enabled and self.remote.remote_only  # type: ignore[union-attr]


def load_toml_config(path: Path) -> dict[str, Any]:
    """Load configuration from TOML file."""
    with open(path, "rb") as f:
        return tomllib.load(f)


def load_json_config(path: Path) -> dict[str, Any]:
    """Load configuration from JSON file."""
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def dict_to_config(data: dict[str, Any], project_root: Path) -> JournalConfig:
    """Convert dictionary to JournalConfig."""
    config = JournalConfig(project_journal_path=resolve_project_journal_path(project_root))

    if "paths" in data:
        paths = data["paths"]
        if "project" in paths:
            config.project_journal_path = _resolve_against(project_root, paths["project"])
        if "user" in paths:
            config.user_journal_path = _resolve_against(project_root, paths["user"])

    if "embedding" in data:
        emb = data["embedding"]
        if "model" in emb:
            config.embedding_model = emb["model"]

    if "remote" in data:
        rem = data["remote"]
        if "timeout" in rem:
            config.remote_timeout = float(rem["timeout"])
        if rem.get("server_url") and rem.get("team_id") and rem.get("api_key"):
            config.remote = RemoteConfig(
                server_url=str(rem["server_url"]).rstrip("/"),
                team_id=str(rem["team_id"]),
                api_key=str(rem["api_key"]),
                enabled=bool(rem.get("enabled", True)),
                remote_only=bool(rem.get("remote_only", False)),
            )

    if "debug" in data:
        config.debug = bool(data["debug"])

    return config


def _resolve_against(project_root: Path, value: str) -> Path:
    path = Path(value).expanduser()
    return path if path.is_absolute() else project_root / path


def apply_environment(config: JournalConfig, environ: Optional[Mapping[str, str]] = None) -> JournalConfig:
    """Return a copy of config with environment overrides applied."""
    env = os.environ if environ is None else environ
    updates: dict[str, Any] = {}

    model = env.get("JOURNAL_EMBEDDING_MODEL")
    if model:
        updates["embedding_model"] = model

    remote = create_remote_config(env)
    if remote is not None:
        updates["remote"] = remote

    if _is_true(env.get("JOURNAL_DEBUG")):
        updates["debug"] = True

    return replace(config, **updates) if updates else config


def find_config_file(project_root: Path) -> Optional[Path]:
    """Find configuration file in project root.

    Search order:
    1. journal_config.toml
    2. journal_config.json
    3. .private-journal.toml
    4. .private-journal.json
    """
    candidates = [
        "journal_config.toml",
        "journal_config.json",
        ".private-journal.toml",
        ".private-journal.json",
    ]

    for name in candidates:
        path = project_root / name
        if path.is_file():
            return path

    return None


def load_config(
    project_root: Path,
    config_path: Optional[Path] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> JournalConfig:
    """Load journal configuration.

    Args:
        project_root: Root directory of the project
        config_path: Optional explicit path to config file
        environ: Environment mapping (default: os.environ)

    Returns:
        JournalConfig instance
    """
    if config_path is None:
        config_path = find_config_file(project_root)

    if config_path is None:
        config = JournalConfig(project_journal_path=resolve_project_journal_path(project_root))
        return apply_environment(config, environ)

    suffix = config_path.suffix.lower()

    if suffix == ".toml":
        config_dict = load_toml_config(config_path)
    elif suffix == ".json":
        config_dict = load_json_config(config_path)
    else:
        raise ValueError(f"Unsupported config file type: {suffix}")

    return apply_environment(dict_to_config(config_dict, project_root), environ)
