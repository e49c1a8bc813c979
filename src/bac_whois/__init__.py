"""bac-whois: BACnet device discovery with Who-Is and I-Am."""

__version__ = "1.0.0"

from bac_whois.app.collector import DiscoveredEntity, RecordOutcome, ResponseCollector
from bac_whois.app.loop import DiscoveryLoop, DiscoveryResult
from bac_whois.app.resolver import AddressHint, Resolution, resolve_destination
from bac_whois.app.stack import BACnetStack
from bac_whois.config import DatalinkConfig, LoopConfig
from bac_whois.network.address import BACnetAddress, BIPAddress

__all__ = [
    "AddressHint",
    "BACnetAddress",
    "BACnetStack",
    "BIPAddress",
    "DatalinkConfig",
    "DiscoveredEntity",
    "DiscoveryLoop",
    "DiscoveryResult",
    "LoopConfig",
    "RecordOutcome",
    "Resolution",
    "ResponseCollector",
    "__version__",
    "resolve_destination",
]
