"""Base layer: configuration, runtime settings and the shared scan context."""
