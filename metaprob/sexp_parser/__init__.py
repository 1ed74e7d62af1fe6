"""S-expression reader for the surface syntax."""
