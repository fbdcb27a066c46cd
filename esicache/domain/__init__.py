"""Domain Layer: records, value objects, errors and ports.

Nothing in here talks to the network or the disk.
"""
