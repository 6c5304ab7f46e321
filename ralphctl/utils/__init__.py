"""Shared utilities for ralphctl."""
