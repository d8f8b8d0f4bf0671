"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Adapters from web frameworks to agent request records.
"""
