"""Prompting package.

Contains the deterministic directive builder used for watermark removal. It does
not perform encoding, transport, or response parsing.
"""
