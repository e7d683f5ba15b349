"""Build tool introspection and per-tree build model."""
