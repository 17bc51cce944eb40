"""Photo studio booking backend."""
