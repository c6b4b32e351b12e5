"""
Persistence adapters.

``Collection`` is the interface controllers depend on; ``MemoryCollection``
and ``SqlCollection`` implement it.
"""
