"""Endpoint tags and class discovery."""
