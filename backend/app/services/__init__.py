"""Services Layer: the store adapter and the synchronization view model.

Invariants:
    - Services depend on core Protocols, never on a concrete provider
"""
