"""Watermark Nuker API adapter package.

Architectural role:
- Defines the HTTP interaction boundary and the server entrypoint.
- Performs transport-level validation and response shaping.
- Delegates workflow state to `watermark_nuker.core`.
"""
