"""Core infrastructure: configuration, logging, stage catalog and the graph store."""
