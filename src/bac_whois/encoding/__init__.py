"""Tag, primitive and APDU codecs for discovery services."""
