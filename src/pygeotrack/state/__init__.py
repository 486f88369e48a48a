"""State layer.

The asset store is the single owner of asset records, their location
history and the spatial index over live positions.
"""
