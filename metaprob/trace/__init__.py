"""Address-keyed tries used as expressions, environments and traces."""
