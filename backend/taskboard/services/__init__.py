"""Engine services operating on the domain schemas."""
