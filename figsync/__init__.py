"""FIG reference-data sync service."""
