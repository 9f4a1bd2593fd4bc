"""Chain integrations."""
