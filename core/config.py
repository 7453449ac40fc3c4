"""Application configuration.

Settings come from environment variables. A `.env` file at the repository
root is loaded first if present, so local runs and the worker share one
source of truth.

Usage:
    from core.config import load_config

    config = load_config()
    config.directories.results  # pending WMS return files
"""

import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError

env_path = Path(__file__).resolve().parents[1] / ".env"
if env_path.exists():
    load_dotenv(env_path)


class ConfigurationError(Exception):
    """Required configuration is missing or invalid. Never retried."""
    pass


# =============================================================================
# Config Models
# =============================================================================

class DirectoryConfig(BaseModel):
    """WMS exchange directories."""
    results: Path = Field(..., description="Pending WMS return files")
    orders: Path = Field(..., description="Outbound pick orders")
    purchase_orders: Path = Field(..., description="Outbound purchase orders (inbound transfers)")
    items: Path = Field(..., description="Latest item catalog snapshot")
    confirmations: Path = Field(..., description="Pick/purchase confirmations built from returns")


class OrderStatusConfig(BaseModel):
    """ERP status codes used by the state machine."""
    new: str = "NEW"
    moved_to_wms: str = "MOVED_TO_WMS"
    acknowledged: str = "ACKNOWLEDGED"
    completed: str = "READY_FROM_WMS"


class DirectoConfig(BaseModel):
    """Directo ERP API settings."""
    organization: str
    api_key: str
    base_url: str = "https://login.directo.ee/xmlcore"
    timeout_seconds: int = 30


class AppConfig(BaseModel):
    """Full application configuration."""
    directo: DirectoConfig
    warehouse_location: str
    directories: DirectoryConfig
    order_statuses: OrderStatusConfig = Field(default_factory=OrderStatusConfig)
    item_sync_history_hours: float = 6
    log_level: str = "INFO"
    log_json: bool = False


# =============================================================================
# Loading
# =============================================================================

def _env(name: str, default: Optional[str] = None) -> Optional[str]:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    return value.strip()


def _require(name: str) -> str:
    value = _env(name)
    if value is None:
        raise ConfigurationError(f"{name} environment variable not set")
    return value


def load_config() -> AppConfig:
    """Build an AppConfig from the environment.

    Raises:
        ConfigurationError: If a required variable is missing or a value does not parse
    """
    statuses = OrderStatusConfig()
    try:
        return AppConfig(
            directo=DirectoConfig(
                organization=_require("DIRECTO_ORGANIZATION"),
                api_key=_require("DIRECTO_API_KEY"),
                base_url=_env("DIRECTO_BASE_URL", DirectoConfig.model_fields["base_url"].default),
                timeout_seconds=_env("DIRECTO_TIMEOUT_SECONDS", "30"),
            ),
            warehouse_location=_require("WAREHOUSE_LOCATION"),
            directories=DirectoryConfig(
                results=_require("WMS_RESULTS_DIR"),
                orders=_require("WMS_ORDERS_DIR"),
                purchase_orders=_require("WMS_PURCHASE_ORDERS_DIR"),
                items=_require("WMS_ITEMS_DIR"),
                confirmations=_require("WMS_CONFIRMATIONS_DIR"),
            ),
            order_statuses=OrderStatusConfig(
                new=_env("ORDER_STATUS_NEW", statuses.new),
                moved_to_wms=_env("ORDER_STATUS_MOVED_TO_WMS", statuses.moved_to_wms),
                acknowledged=_env("ORDER_STATUS_ACKNOWLEDGED", statuses.acknowledged),
                completed=_env("ORDER_STATUS_COMPLETED", statuses.completed),
            ),
            item_sync_history_hours=_env("ITEM_SYNC_HISTORY_HOURS", "6"),
            log_level=_env("LOG_LEVEL", "INFO").upper(),
            log_json=_env("LOG_JSON", "false").lower() in ("1", "true", "yes"),
        )
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e
