"""Concrete adapters for the interfaces in :mod:`livekb.interfaces`."""
