"""Per-domain setting definitions loaded by appcore.config_schema."""
