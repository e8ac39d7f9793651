"""Users page helpers."""
