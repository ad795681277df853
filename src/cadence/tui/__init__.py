"""Terminal UI for Cadence."""
