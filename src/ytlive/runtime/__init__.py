"""
Runtime layer - schedule evaluation, the stream store, the lifecycle state
machine, batch operations and the reconciliation loop.
"""
