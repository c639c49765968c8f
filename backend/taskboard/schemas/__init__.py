"""Domain and API payload schemas."""
