"""Domain models for the mirrored catalogs."""
