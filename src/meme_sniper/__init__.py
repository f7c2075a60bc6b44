"""
Memecoin sniper package.

Watches the Starknet memecoin factory for launches and pushes alerts with
price and market cap figures.
"""

from .config import SniperConfig
from .event_processor import EventProcessor
from .models import CreationEvent, LaunchEvent, LaunchReport, TokenRecord
from .pipeline import LaunchPipeline

__all__ = [
    "SniperConfig",
    "LaunchPipeline",
    "EventProcessor",
    "CreationEvent",
    "LaunchEvent",
    "LaunchReport",
    "TokenRecord",
]
__version__ = "0.1.0"
