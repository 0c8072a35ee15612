"""Persistence configuration composition and ORM wiring."""
