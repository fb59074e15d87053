"""CASA volunteer management API."""
