"""NPDU encoding/decoding, BACnet addressing, and the network layer."""
