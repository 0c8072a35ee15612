"""Small helpers shared across appcore."""
