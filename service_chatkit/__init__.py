"""ChatKit Token Service."""
