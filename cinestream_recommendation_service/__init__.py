"""CineStream recommendation service."""
