"""Configuration management for edit-locally."""

import os
import json


CONFIG_DIR = os.environ.get("EDIT_LOCALLY_CONFIG_DIR", os.path.expanduser("~/.edit-locally"))
CONFIG_FILE = os.path.join(CONFIG_DIR, "config.json")

DEFAULT_CONFIG = {
    "registry_api_url": "https://crates.io/api/v1/crates",
    "net_retry": 2,
    "user_agent": None,
    "cargo_home": None,
}


def ensure_config_exists():
    """Ensure the configuration directory and file exist."""
    if not os.path.exists(CONFIG_DIR):
        os.makedirs(CONFIG_DIR)

    if not os.path.exists(CONFIG_FILE):
        with open(CONFIG_FILE, "w") as f:
            json.dump({}, f)


def get_config():
    """Get the current configuration merged over the defaults.

    Reading never creates the configuration file.

    Returns:
        dict: Current configuration.
    """
    config = dict(DEFAULT_CONFIG)
    if os.path.exists(CONFIG_FILE):
        with open(CONFIG_FILE, "r") as f:
            config.update(json.load(f))
    return config


def update_config(updates):
    """Update the configuration with new values.

    Args:
        updates (dict): Dictionary of configuration values to update.
    """
    ensure_config_exists()
    with open(CONFIG_FILE, "r") as f:
        config = json.load(f)
    config.update(updates)

    with open(CONFIG_FILE, "w") as f:
        json.dump(config, f, indent=2)


def get_registry_api_url():
    """Get the registry metadata endpoint, honouring EDIT_LOCALLY_REGISTRY_URL.

    Returns:
        str: Base URL; the package name is appended to it.
    """
    return os.environ.get("EDIT_LOCALLY_REGISTRY_URL") or get_config()["registry_api_url"]


def get_net_retry():
    """Get the number of extra attempts for network operations.

    Returns:
        int: Retry count, never negative.
    """
    return max(int(get_config().get("net_retry", 2)), 0)


def get_cargo_home():
    """Get Cargo's home directory: config, then CARGO_HOME, then ~/.cargo.

    Returns:
        str: Path to Cargo's home directory.
    """
    return (get_config().get("cargo_home")
            or os.environ.get("CARGO_HOME")
            or os.path.expanduser("~/.cargo"))
