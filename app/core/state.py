from dataclasses import dataclass
from typing import Optional

import httpx

@dataclass
class RuntimeState:
    """Centralized runtime state"""
    http_client: Optional[httpx.AsyncClient] = None
    ytdlp_version: str = "unknown"

state = RuntimeState()
