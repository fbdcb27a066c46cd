"""Domain Event definitions.

Represents significant occurrences during a sync that other parts
of the system might react to. Currently they are only logged.
"""
