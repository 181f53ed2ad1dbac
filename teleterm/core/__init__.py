"""Core terminal-session protocol client."""
