"""HTTP routers forwarding user intents to the shared workspace."""
