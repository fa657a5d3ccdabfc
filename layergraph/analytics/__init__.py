"""Pure graph algorithms — no DB connections."""
