# config.py
from __future__ import annotations

import os
import string
from dataclasses import dataclass, field
from typing import Mapping, Optional, Tuple

from .errors import ConfigError

TRUNK_BRANCH = "master"
DASHBOARDS_DIR = "dashboards"
DIST_DIR = "dist"
CHANGE_SET_FILE = "git-diff"
EXCLUDE_DIRS = ("rlt",)
JSONNET_PATH = "vendor"
TIMEOUT_SECONDS = 300.0

# Environment tag -> variable holding that server's base URL
SERVER_ENV = {
    "dev": "GRAFANA_SERVER_DEV",
    "tst": "GRAFANA_SERVER_TEST",
}


def _expand(value: Optional[str], env: Mapping[str, str]) -> Optional[str]:
    # credentials may embed $VAR / ${VAR} references; unknown names are left as-is
    if value is None:
        return None
    return string.Template(value).safe_substitute(env)


def _split(value: Optional[str], default: Tuple[str, ...]) -> Tuple[str, ...]:
    if value is None:
        return default
    return tuple(v.strip() for v in value.split(",") if v.strip())


@dataclass(frozen=True)
class Settings:
    """
    Everything the pipeline reads from its environment, collected once.

    Values the current command does not need may be None; call require()
    with the names a command depends on to validate them all at once.
    """
    branch: Optional[str] = None
    before_sha: Optional[str] = None
    commit_message: Optional[str] = None
    grafana_user: Optional[str] = None
    grafana_password: Optional[str] = None
    servers: Mapping[str, Optional[str]] = field(default_factory=dict)

    trunk_branch: str = TRUNK_BRANCH
    dashboards_dir: str = DASHBOARDS_DIR
    dist_dir: str = DIST_DIR
    change_set_file: str = CHANGE_SET_FILE
    exclude_dirs: Tuple[str, ...] = EXCLUDE_DIRS
    jsonnet_path: str = JSONNET_PATH
    timeout: float = TIMEOUT_SECONDS

    # attribute -> environment variable, used for error messages
    ENV_NAMES = {
        "branch": "CI_COMMIT_BRANCH",
        "before_sha": "COMMIT_BEFORE_SHA",
        "commit_message": "CI_COMMIT_MESSAGE",
        "grafana_user": "GRAFANA_USER",
        "grafana_password": "GRAFANA_PASSWORD",
    }

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> Settings:
        env = os.environ if environ is None else environ

        timeout_raw = env.get("DASHCI_TIMEOUT")
        try:
            timeout = float(timeout_raw) if timeout_raw else TIMEOUT_SECONDS
        except ValueError:
            raise ConfigError(["DASHCI_TIMEOUT"], "invalid numeric environment variables")

        return cls(
            branch=env.get("CI_COMMIT_BRANCH"),
            before_sha=env.get("COMMIT_BEFORE_SHA"),
            commit_message=env.get("CI_COMMIT_MESSAGE"),
            grafana_user=_expand(env.get("GRAFANA_USER"), env),
            grafana_password=_expand(env.get("GRAFANA_PASSWORD"), env),
            servers={tag: env.get(var) for tag, var in SERVER_ENV.items()},
            trunk_branch=env.get("DASHCI_TRUNK_BRANCH", TRUNK_BRANCH),
            dashboards_dir=env.get("DASHCI_DASHBOARDS_DIR", DASHBOARDS_DIR),
            dist_dir=env.get("DASHCI_DIST_DIR", DIST_DIR),
            change_set_file=env.get("DASHCI_CHANGE_SET", CHANGE_SET_FILE),
            exclude_dirs=_split(env.get("DASHCI_EXCLUDE_DIRS"), EXCLUDE_DIRS),
            jsonnet_path=env.get("DASHCI_JSONNET_PATH", JSONNET_PATH),
            timeout=timeout,
        )

    @property
    def is_trunk(self) -> bool:
        return self.branch == self.trunk_branch

    def require(self, *names: str, servers: Tuple[str, ...] = ()) -> None:
        """
        Check that every named setting (and server URL) is present.

        Raises:
            ConfigError: listing every missing environment variable.
        """
        missing = [self.ENV_NAMES[n] for n in names if not getattr(self, n)]
        missing += [SERVER_ENV[tag] for tag in servers if not self.servers.get(tag)]
        if missing:
            raise ConfigError(missing)

    def server_url(self, environment: str) -> str:
        self.require(servers=(environment,))
        return str(self.servers[environment]).rstrip("/")
