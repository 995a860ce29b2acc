"""Configuration management for the Polarity REST API client."""

import os
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any

import yaml

from .constants import (
    CLEAR_CHANNEL_POLL_INTERVAL_MS,
    MAX_CONCURRENT_INTEGRATION_SEARCHES,
    MAX_SEARCH_TEXT_LENGTH,
    MAX_TAG_ENTITIES_PER_REQUEST,
)

_FALSE_STRINGS = ("false", "0", "no", "off")


@dataclass
class RequestOptions:
    """
    Transport options recognised when connecting.

    Certificate material is given as paths to PEM files.
    """

    tls_verify: bool = True
    proxy_url: str | None = None
    client_cert: Path | None = None
    client_key: Path | None = None
    key_passphrase: str | None = None
    ca_bundle: Path | None = None
    timeout: float = 30.0

    def __post_init__(self) -> None:
        # Accept plain strings from YAML / env
        for name in ("client_cert", "client_key", "ca_bundle"):
            value = getattr(self, name)
            if isinstance(value, str):
                setattr(self, name, Path(value) if value else None)


@dataclass
class ConnectionConfig:
    """Polarity server connection details."""

    host: str
    username: str
    password: str
    request: RequestOptions = field(default_factory=RequestOptions)

    def __post_init__(self) -> None:
        self.host = self.host.rstrip("/")
        if isinstance(self.request, dict):
            self.request = RequestOptions(**self.request)

    def __repr__(self) -> str:
        return f"ConnectionConfig(host={self.host!r}, username={self.username!r}, password='***')"


@dataclass
class TaggingConfig:
    """Bulk tag upload behaviour."""

    max_pairs_per_request: int = MAX_TAG_ENTITIES_PER_REQUEST
    stop_on_invalid_data: bool = False

    def __post_init__(self) -> None:
        if not 1 <= self.max_pairs_per_request <= MAX_TAG_ENTITIES_PER_REQUEST:
            raise ValueError(
                f"max_pairs_per_request must be between 1 and {MAX_TAG_ENTITIES_PER_REQUEST}"
            )


@dataclass
class ChannelConfig:
    """Channel clear behaviour."""

    clear_poll_interval_ms: int = CLEAR_CHANNEL_POLL_INTERVAL_MS


@dataclass
class SearchConfig:
    """Integration search behaviour."""

    max_concurrency: int = MAX_CONCURRENT_INTEGRATION_SEARCHES
    max_text_length: int = MAX_SEARCH_TEXT_LENGTH


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str = "INFO"
    format: str = "json"
    file: Path | None = None


@dataclass
class PolarityConfig:
    """
    Complete configuration for the Polarity client and CLI.

    ``connection`` is optional so a config file can carry only defaults and
    have credentials come from elsewhere.
    """

    connection: ConnectionConfig | None = None
    tagging: TaggingConfig = field(default_factory=TaggingConfig)
    channels: ChannelConfig = field(default_factory=ChannelConfig)
    search: SearchConfig = field(default_factory=SearchConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def from_file(cls, config_path: Path) -> "PolarityConfig":
        """
        Load configuration from YAML file.

        Args:
            config_path: Path to YAML config file

        Returns:
            PolarityConfig instance

        Raises:
            ValueError: If the file is not valid YAML, not a mapping, or has
                missing or unknown keys in a section
        """
        try:
            with open(config_path) as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in configuration file {config_path}: {e}") from e

        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ValueError(
                f"Invalid configuration file structure in {config_path}: "
                f"expected dictionary, got {type(data).__name__}"
            )

        try:
            connection_data = data.get("connection")
            connection = ConnectionConfig(**connection_data) if connection_data else None

            logging_data = dict(data.get("logging") or {})
            if logging_data.get("file"):
                logging_data["file"] = Path(logging_data["file"])

            return cls(
                connection=connection,
                tagging=TaggingConfig(**(data.get("tagging") or {})),
                channels=ChannelConfig(**(data.get("channels") or {})),
                search=SearchConfig(**(data.get("search") or {})),
                logging=LoggingConfig(**logging_data),
            )
        except TypeError as e:
            # Missing or unknown section keys
            raise ValueError(f"Invalid configuration in {config_path}: {e}") from e

    def to_file(self, config_path: Path) -> None:
        """
        Save configuration to YAML file.

        Args:
            config_path: Path to save config file
        """
        data: dict[str, Any] = {
            "connection": _stringify_paths(asdict(self.connection)) if self.connection else None,
            "tagging": asdict(self.tagging),
            "channels": asdict(self.channels),
            "search": asdict(self.search),
            "logging": _stringify_paths(
                {k: v for k, v in asdict(self.logging).items() if v is not None}
            ),
        }

        config_path.parent.mkdir(parents=True, exist_ok=True)

        with open(config_path, "w") as f:
            yaml.dump(data, f, default_flow_style=False, sort_keys=False)

    @classmethod
    def from_env(cls) -> "PolarityConfig":
        """
        Create configuration from environment variables.

        Environment variables:
            POLARITY_HOST: Server URL, e.g. https://polarity.example.com
            POLARITY_USERNAME: Username
            POLARITY_PASSWORD: Password
            POLARITY_VERIFY_SSL: Set to 'false' to skip TLS verification
            POLARITY_PROXY: Proxy URL
            POLARITY_CA_BUNDLE: Path to a PEM CA bundle
            LOG_LEVEL: Logging level (default: INFO)
            LOG_FORMAT: json or console (default: json)

        Raises:
            ValueError: If POLARITY_HOST is set but credentials are missing
        """
        connection = None
        host = os.getenv("POLARITY_HOST")
        if host:
            username = os.environ.get("POLARITY_USERNAME", "")
            password = os.environ.get("POLARITY_PASSWORD", "")

            missing_creds = []
            if not username:
                missing_creds.append("POLARITY_USERNAME")
            if not password:
                missing_creds.append("POLARITY_PASSWORD")

            if missing_creds:
                raise ValueError(
                    f"POLARITY_HOST is set but required credentials are missing: "
                    f"{', '.join(missing_creds)}."
                )

            verify = os.environ.get("POLARITY_VERIFY_SSL", "true").lower() not in _FALSE_STRINGS

            connection = ConnectionConfig(
                host=host,
                username=username,
                password=password,
                request=RequestOptions(
                    tls_verify=verify,
                    proxy_url=os.environ.get("POLARITY_PROXY") or None,
                    ca_bundle=os.environ.get("POLARITY_CA_BUNDLE") or None,
                ),
            )

        return cls(
            connection=connection,
            logging=LoggingConfig(
                level=os.environ.get("LOG_LEVEL", "INFO"),
                format=os.environ.get("LOG_FORMAT", "json"),
            ),
        )


def _stringify_paths(data: dict[str, Any]) -> dict[str, Any]:
    result = {}
    for key, value in data.items():
        if isinstance(value, Path):
            value = str(value)
        elif isinstance(value, dict):
            value = _stringify_paths(value)
        result[key] = value
    return result


def load_config(config_file: Path | None = None) -> PolarityConfig:
    """
    Load configuration from file or environment variables.

    Raises:
        FileNotFoundError: If config_file is specified but doesn't exist
    """
    if config_file:
        if not config_file.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_file}")
        return PolarityConfig.from_file(config_file)
    return PolarityConfig.from_env()
