"""CLI commands for ralphctl."""
