import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import yaml

from gerry_core.errors import ConfigError
from gerry_core.utils.validation import validate_port, validate_server, validate_ssh_key, validate_username

logger = logging.getLogger(__name__)

DEFAULT_SSH_PORT = 29418
DEFAULT_CONFIG_PATH = Path.home() / ".gerry" / "config.yml"

DEFAULT_CONFIG: dict = {
    "server": None,
    "port": DEFAULT_SSH_PORT,
    "http_port": None,  # None = derive from the SSH port
    "user": None,
    "http_password": None,
    "ssh_key": None,  # None = let ssh pick its default identity
    "project": None,
    "timeout": 30,
    "analyze_timeout": 300,
    "resolution_phrases": ["Done"],
}

# Environment variable -> config key. Applied after the file, before CLI flags.
ENV_OVERRIDES = {
    "GERRIT_SERVER": "server",
    "GERRIT_PORT": "port",
    "GERRIT_HTTP_PORT": "http_port",
    "GERRIT_USER": "user",
    "GERRIT_HTTP_PASSWORD": "http_password",
    "GERRIT_SSH_KEY": "ssh_key",
    "GERRIT_PROJECT": "project",
}


def load_config(config_path: Optional[str] = None, cli_overrides: Optional[dict] = None) -> dict:
    """
    Load configuration by merging (in order of precedence):
      1. Built-in defaults
      2. ~/.gerry/config.yml (or ``config_path``)
      3. GERRIT_* environment variables
      4. CLI argument overrides
    """
    config = {**DEFAULT_CONFIG, "resolution_phrases": list(DEFAULT_CONFIG["resolution_phrases"])}

    path = Path(config_path) if config_path else DEFAULT_CONFIG_PATH
    if path.exists():
        with open(path) as f:
            try:
                file_config = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                raise ConfigError(f"failed to parse config file {path}: {e}") from e
        if not isinstance(file_config, dict):
            raise ConfigError(f"config file {path} must contain a mapping")
        config.update(file_config)

    for env_name, key in ENV_OVERRIDES.items():
        value = os.environ.get(env_name)
        if value:
            config[key] = value

    if cli_overrides:
        for key, value in cli_overrides.items():
            if value is not None:
                config[key] = value

    config["resolution_phrases"] = _resolution_phrases(config.get("resolution_phrases"))
    return config


def _resolution_phrases(value) -> list:
    """Accept a single phrase or a list of phrases; anything else is a config error."""
    if value is None:
        return list(DEFAULT_CONFIG["resolution_phrases"])
    if isinstance(value, str):
        return [value]
    if not isinstance(value, list) or not all(isinstance(phrase, str) for phrase in value):
        raise ConfigError("resolution_phrases must be a phrase or a list of phrases")
    return list(value)


def save_config(config: dict, config_path: Optional[str] = None) -> Path:
    """Write the persistent keys of ``config`` as YAML, merged over any existing file."""
    path = Path(config_path) if config_path else DEFAULT_CONFIG_PATH
    existing: dict = {}
    if path.exists():
        existing = yaml.safe_load(path.read_text()) or {}
    existing.update({k: v for k, v in config.items() if k in DEFAULT_CONFIG and v is not None})

    if existing.get("http_password"):
        logger.warning(
            "HTTP password will be stored in plain text at %s; consider GERRIT_HTTP_PASSWORD instead.", path
        )

    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(yaml.dump(existing, default_flow_style=False, sort_keys=False))
    path.chmod(0o600)
    return path


@dataclass(frozen=True)
class ConnectionProfile:
    """Validated connection settings shared by the REST and SSH transports."""

    server: str
    user: str
    port: int = DEFAULT_SSH_PORT
    http_port: Optional[int] = None
    http_password: Optional[str] = field(default=None, repr=False)
    ssh_key: Optional[str] = None
    project: Optional[str] = None
    timeout: float = 30.0

    @classmethod
    def from_config(cls, config: dict) -> "ConnectionProfile":
        try:
            server = validate_server(config.get("server"))
            user = validate_username(config.get("user"))
            port = validate_port(config.get("port") or DEFAULT_SSH_PORT)
            http_port = validate_port(config["http_port"]) if config.get("http_port") else None
            ssh_key = validate_ssh_key(config["ssh_key"]) if config.get("ssh_key") else None
            timeout = float(config.get("timeout") or DEFAULT_CONFIG["timeout"])
        except ValueError as e:
            raise ConfigError(f"invalid configuration: {e}. Run `gerry init` to fix it.") from e

        return cls(
            server=server,
            user=user,
            port=port,
            http_port=http_port,
            http_password=config.get("http_password") or None,
            ssh_key=ssh_key,
            project=config.get("project") or None,
            timeout=timeout,
        )

    def rest_base_url(self) -> str:
        """Return ``<scheme>://<host>[:<port>]`` for the REST API.

        Without an explicit HTTP port, a server on the conventional SSH port
        29418 is assumed to serve HTTPS on 443; otherwise the SSH port is
        reused. Ports 80/8080 speak plain HTTP, everything else HTTPS.
        """
        port = self.http_port
        if port is None:
            port = 443 if self.port == DEFAULT_SSH_PORT else self.port

        scheme = "http" if port in (80, 8080) else "https"
        if (scheme, port) in (("https", 443), ("http", 80)):
            return f"{scheme}://{self.server}"
        return f"{scheme}://{self.server}:{port}"

    def ssh_remote_url(self) -> str:
        """Remote used for ``git fetch`` of change refs."""
        base = f"ssh://{self.user}@{self.server}:{self.port}"
        return f"{base}/{self.project}" if self.project else base
