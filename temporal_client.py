"""Temporal client factory.

Connects to Temporal Cloud when an API key or client certificate is
configured, otherwise to a plain server such as `temporal server start-dev`.
"""

import os
from pathlib import Path
from typing import Union

# Load .env file if it exists
from dotenv import load_dotenv
env_path = Path(__file__).resolve().parent / ".env"
if env_path.exists():
    load_dotenv(env_path)

from temporalio.client import Client
from temporalio.service import TLSConfig

DEFAULT_ENDPOINT = "localhost:7233"


def _tls_config() -> Union[bool, TLSConfig]:
    cert_path = os.getenv("TEMPORAL_CERT_PATH")
    key_path = os.getenv("TEMPORAL_KEY_PATH")
    if cert_path and key_path:
        return TLSConfig(
            client_cert=Path(cert_path).read_bytes(),
            client_private_key=Path(key_path).read_bytes(),
        )
    return bool(os.getenv("TEMPORAL_API_KEY"))


async def get_temporal_client() -> Client:
    """Create and return a connected Temporal client.

    Reads configuration from environment variables:
    - TEMPORAL_ENDPOINT: host:port (default "localhost:7233")
    - TEMPORAL_NAMESPACE: Namespace (default "default")
    - TEMPORAL_API_KEY: Temporal Cloud API key; enables TLS when set
    - TEMPORAL_CERT_PATH / TEMPORAL_KEY_PATH: client certificate and key for mTLS
    """
    return await Client.connect(
        target_host=os.getenv("TEMPORAL_ENDPOINT", DEFAULT_ENDPOINT),
        namespace=os.getenv("TEMPORAL_NAMESPACE", "default"),
        api_key=os.getenv("TEMPORAL_API_KEY"),
        tls=_tls_config(),
    )
