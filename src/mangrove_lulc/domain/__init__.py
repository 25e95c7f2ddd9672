"""Domain types and errors."""
