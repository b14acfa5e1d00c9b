"""Upload preprocessing package for API adapters.

Architectural role:
- Validates and spools selected images, manages preview references.
- Encodes spooled images into transfer-safe payloads.

Scope:
- Content preprocessing only; no HTTP endpoint definitions.
"""
