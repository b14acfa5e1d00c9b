"""Core session package.

Architectural role:
    Sits between the HTTP adapter and the lower-level intake, encoding and
    editing layers.

Composition:
    - `session_controller`: the per-session state machine and removal workflow.
    - `session_store`: in-memory registry of live sessions.
    - `session_types`: shared data contracts.
    - `errors`: exception taxonomy.

Side effects:
    Package import itself is side-effect free.
"""
