"""Data-link transports: the ``Datalink`` protocol and BACnet/IP."""
