"""Rental property import and query service."""
