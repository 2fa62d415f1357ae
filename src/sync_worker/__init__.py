"""Background sync worker."""
