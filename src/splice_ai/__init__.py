"""
splice_ai: concurrent AI edit tasks over line regions of open documents.

Packages:
- core/: regions, error vocabulary, ports (Protocols), app state
- tasks/: task model, registry, conflict detection, lifecycle controller
- editing/: response parsing, import placement, review gate, apply engine
- backend/: OpenCode HTTP, OpenAI-compatible and offline backends
- documents/: in-memory document store
- cli/, connectors/: console front-end
"""

__version__ = "0.1.0"
