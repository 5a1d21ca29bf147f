"""Core components of the diagnostic facility."""
