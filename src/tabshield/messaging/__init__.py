"""Push notifications and the request/response message surface.

Only the bus is re-exported here; import MessageRouter from
tabshield.messaging.router (it depends on the engine package, which
itself publishes through the bus).
"""
from tabshield.messaging.bus import RULES_COUNT_UPDATE, TAB_STATS_UPDATE, NotificationBus

__all__ = ["RULES_COUNT_UPDATE", "TAB_STATS_UPDATE", "NotificationBus"]
