"""Command line plumbing for swarmbox."""
