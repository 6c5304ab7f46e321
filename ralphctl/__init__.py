"""
ralphctl - run a coding agent in a bounded, observable loop

Implements the "Ralph" method: the same prompt is fed to an agent CLI
again and again, with progress kept on disk between iterations.
"""

__version__ = "0.1.0"

__all__ = ["__version__"]
