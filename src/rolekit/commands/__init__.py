"""rolekit CLI commands."""
