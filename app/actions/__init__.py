"""Internal accounts actions."""
