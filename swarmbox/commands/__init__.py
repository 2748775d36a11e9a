"""CLI command handlers for swarmbox."""
