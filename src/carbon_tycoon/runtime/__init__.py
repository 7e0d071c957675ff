"""Formula engine, competitor policies and turn resolution."""
