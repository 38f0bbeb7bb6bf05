"""Translation backends and endpoint handling."""
