"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Agent version identifiers.
"""

__version__ = "0.1.0"

AGENT_NAME = "optics-agent-py"
AGENT_VERSION = f"{AGENT_NAME} {__version__}"
