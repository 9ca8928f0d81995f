"""Template registry, resolution and the template build engine."""
