# dualflow/config.py
"""
Environment configuration for the Dual Flow service and editing sessions.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from .flow_logging import get_logger

logger = get_logger(__name__)

DEFAULT_BACKEND_BY_ENV = {
    "test": "memory",
    "ci": "memory",
    "dev": "memory",
}


def load_env_config(env: Optional[str] = None) -> Optional[Path]:
    """Load env/{env}/config/.env into the process environment if present."""
    env = env or os.getenv("APP_ENV", "dev")
    env_file = Path(f"env/{env}/config/.env")

    if env_file.exists():
        load_dotenv(env_file)
        logger.debug(f"Loaded environment file {env_file}")
        return env_file
    return None


def _running_under_pytest() -> bool:
    return bool(os.getenv("PYTEST_CURRENT_TEST"))


@dataclass
class DualFlowConfig:
    """Settings shared by the API service, the gateway factory and sessions"""
    env: str = "dev"
    backend: str = "memory"
    mongo_uri: Optional[str] = None
    mongo_database: str = "dualflow"
    diagram_collection: str = "diagrams"
    api_url: str = "http://localhost:8000"
    api_timeout_s: float = 10.0
    cache_path: Path = Path("artifacts/session/diagram-storage.json")
    base_url: str = "http://localhost:5173/"
    port: int = 8000

    @classmethod
    def from_env(cls) -> "DualFlowConfig":
        """Build configuration from environment variables"""
        env = os.getenv("APP_ENV", "dev")
        load_env_config(env)

        backend = os.getenv("DIAGRAM_BACKEND", "").strip().lower()
        if not backend:
            if _running_under_pytest():
                backend = "memory"
            else:
                backend = DEFAULT_BACKEND_BY_ENV.get(env, "mongo")

        try:
            timeout = float(os.getenv("DIAGRAM_API_TIMEOUT", "10") or "10")
        except ValueError:
            logger.warning("Invalid DIAGRAM_API_TIMEOUT, falling back to 10s")
            timeout = 10.0

        try:
            port = int(os.getenv("PORT", "8000") or "8000")
        except ValueError:
            logger.warning("Invalid PORT, falling back to 8000")
            port = 8000

        return cls(
            env=env,
            backend=backend,
            mongo_uri=os.getenv("MONGO_URI") or os.getenv("MONGODB_CONNECTION_STRING"),
            mongo_database=os.getenv("MONGODB_DATABASE", "dualflow"),
            diagram_collection=os.getenv("DIAGRAM_COLLECTION", "diagrams"),
            api_url=os.getenv("DIAGRAM_API_URL", "http://localhost:8000"),
            api_timeout_s=timeout,
            cache_path=Path(os.getenv("DIAGRAM_CACHE_PATH", "artifacts/session/diagram-storage.json")),
            base_url=os.getenv("APP_BASE_URL", "http://localhost:5173/"),
            port=port,
        )
