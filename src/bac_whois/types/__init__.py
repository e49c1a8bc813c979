"""BACnet enumerations and value types used by the discovery tools."""
