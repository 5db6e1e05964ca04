"""
Configuration management (SSOT).

All configuration keys for the SMS ledger pipeline are defined here; no other
module should invent config keys.

Key invariants:
- The ledger endpoint is the only remote URL the pipeline talks to
- The message store is only ever read from the configured box
"""

import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml

DEFAULT_ENDPOINT_URL = "https://script.google.com/macros/s/YOUR_DEPLOYMENT_ID/exec"


class ConfigValidationError(Exception):
    """Raised when configuration validation fails."""

    pass


@dataclass
class MessageStoreConfig:
    """Device message store configuration.

    db_path points at an exported Android ``mmssms.db`` (or any SQLite file
    with a compatible ``sms`` table).
    """

    db_path: Path = field(default_factory=lambda: Path("data/mmssms.db"))
    box: str = "inbox"


@dataclass
class LedgerConfig:
    """Remote ledger endpoint configuration."""

    endpoint_url: str = DEFAULT_ENDPOINT_URL
    # Upper bound for one submission; expiry counts as a failed submission
    timeout_seconds: int = 30


@dataclass
class Config:
    """Application configuration (SSOT)."""

    message_store: MessageStoreConfig = field(default_factory=MessageStoreConfig)
    ledger: LedgerConfig = field(default_factory=LedgerConfig)
    state_db_path: Path = field(default_factory=lambda: Path("data/state.db"))
    # Record reconciliation attempts so accepted messages are never re-submitted
    journal_enabled: bool = True

    def validate(self) -> list[str]:
        """Validate configuration completeness and consistency.

        Returns:
            List of validation errors (empty if valid)
        """
        errors: list[str] = []

        if not self.ledger.endpoint_url:
            errors.append("ledger.endpoint_url is required")
        elif not self.ledger.endpoint_url.startswith(("http://", "https://")):
            errors.append("ledger.endpoint_url must be an http(s) URL")

        if self.ledger.timeout_seconds <= 0:
            errors.append("ledger.timeout_seconds must be positive")

        if self.message_store.box not in ("inbox", "sent", "draft", "outbox"):
            errors.append(f"message_store.box '{self.message_store.box}' is not a known box")

        return errors


def _env_flag(name: str, default: bool) -> bool:
    value = os.environ.get(name, "").lower()
    if value == "true":
        return True
    if value == "false":
        return False
    return default


def load_config(config_path: Path) -> Config:
    """
    Load configuration from YAML file.

    Environment variables can override config values:
    - SMS_LEDGER_MESSAGE_DB
    - SMS_LEDGER_ENDPOINT
    - SMS_LEDGER_TIMEOUT (seconds)
    - SMS_LEDGER_STATE_DB
    - SMS_LEDGER_JOURNAL (true/false)
    """
    if config_path.exists():
        with open(config_path) as f:
            data = yaml.safe_load(f) or {}
    else:
        data = {}

    store_data = data.get("message_store", {}) or {}
    message_store = MessageStoreConfig(
        db_path=Path(
            os.environ.get(
                "SMS_LEDGER_MESSAGE_DB", store_data.get("db_path", "data/mmssms.db")
            )
        ),
        box=store_data.get("box", "inbox"),
    )

    ledger_data = data.get("ledger", {}) or {}
    timeout = ledger_data.get("timeout_seconds", 30)
    timeout_env = os.environ.get("SMS_LEDGER_TIMEOUT", "")
    if timeout_env:
        try:
            timeout = int(timeout_env)
        except ValueError:
            raise ConfigValidationError(
                f"SMS_LEDGER_TIMEOUT must be an integer, got '{timeout_env}'"
            )

    ledger = LedgerConfig(
        endpoint_url=os.environ.get(
            "SMS_LEDGER_ENDPOINT", ledger_data.get("endpoint_url", DEFAULT_ENDPOINT_URL)
        ),
        timeout_seconds=int(timeout),
    )

    state_db = os.environ.get("SMS_LEDGER_STATE_DB", data.get("state_db_path", "data/state.db"))

    return Config(
        message_store=message_store,
        ledger=ledger,
        state_db_path=Path(state_db),
        journal_enabled=_env_flag("SMS_LEDGER_JOURNAL", data.get("journal_enabled", True)),
    )


def create_default_config(config_path: Path) -> None:
    """Create a default configuration file."""
    default_config = f"""# SMS → Ledger Pipeline Configuration

message_store:
  db_path: "data/mmssms.db"    # Exported device SMS database
  box: "inbox"                  # Only this box is scanned

ledger:
  endpoint_url: "{DEFAULT_ENDPOINT_URL}"
  timeout_seconds: 30           # A submission that takes longer counts as failed

# Reconciliation journal (prevents re-submitting accepted messages)
state_db_path: "data/state.db"
journal_enabled: true
"""

    config_path.parent.mkdir(parents=True, exist_ok=True)
    with open(config_path, "w") as f:
        f.write(default_config)
