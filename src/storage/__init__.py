"""Run storage: layout, writers, manifests, readers."""
