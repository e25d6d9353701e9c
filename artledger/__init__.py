"""
artledger - versioned, status-gated artifact store.

Artifacts are structured or freeform outputs (outlines, world-graphs, briefs)
that are edited, reviewed and eventually committed elsewhere. The package
provides:

- Envelope codec and per-type data packs
- Typed operations compiled into generic patches
- An explicit status state machine
- Source tracking with on-read staleness classification
- An append-only version/op/message history
"""

__version__ = "0.1.0"
