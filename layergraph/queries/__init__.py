"""DB I/O only."""
