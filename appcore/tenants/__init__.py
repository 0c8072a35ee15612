"""Database-per-tenant routing."""
