"""Context Store Implementation.

JSON-file persistence of context records under ``.devctx/``.
Bounded Context: Context Storage
"""
