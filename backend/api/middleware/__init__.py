"""API middleware package."""
