"""Configuration management for the kluster application."""
import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

# Load environment variables from .env file if it exists
load_dotenv()

DEFAULT_KUBECONFIG_FILE_NAME = "config"


def _optional_float(value: Optional[str]) -> Optional[float]:
    return float(value) if value else None


class Config:
    """Application configuration with sensible defaults."""

    # Multipass
    MULTIPASS_BIN: str = os.getenv("MULTIPASS_BIN", "multipass")
    WITH_SUDO: bool = bool(os.getenv("KLUSTER_WITH_SUDO"))

    # Local state
    KLUSTER_HOME: str = os.getenv("KLUSTER_HOME", str(Path.home() / ".kluster"))
    RELEASES_CACHE: str = os.getenv(
        "KLUSTER_RELEASES_CACHE",
        str(Path(KLUSTER_HOME) / "cache" / "k3s-releases"),
    )
    RELEASES_EXPIRY: str = os.getenv("KLUSTER_RELEASES_EXPIRY", "24h")

    # k3s releases API
    K3S_RELEASES_URL: str = os.getenv(
        "K3S_RELEASES_URL", "https://api.github.com/repos/k3s-io/k3s/releases"
    )
    # No timeout unless explicitly configured
    API_TIMEOUT: Optional[float] = _optional_float(os.getenv("KLUSTER_API_TIMEOUT"))

    # Logging
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "WARNING").upper()
    LOG_FORMAT: str = os.getenv(
        "LOG_FORMAT",
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )

    @classmethod
    def kubeconfig_path(cls) -> Path:
        """Resolve the kubeconfig file kluster writes to.

        $KUBECONFIG wins when set (first entry if it holds a path list),
        otherwise ~/.kube/config.
        """
        env_value = os.getenv("KUBECONFIG", "")
        candidates = [p for p in env_value.split(os.pathsep) if p]
        if candidates:
            return Path(candidates[0]).expanduser()
        return Path.home() / ".kube" / DEFAULT_KUBECONFIG_FILE_NAME

