"""Config schema: Multi-tenancy settings."""

FIELDS = [
    {
        "key": "tenants.enable",
        "cast": "bool",
        "default": False,
        "description": "Route each tenant to its own database (db.<tenant>.url).",
    },
    {
        "key": "tenants.default",
        "cast": "str",
        "default": None,
        "description": "Tenant used when a request names none.",
    },
]

SECTION = {
    "key": "tenancy",
    "title": "Tenancy",
    "note": "Requests pick a tenant with the X-Tenant-ID header or the TENANTID cookie.",
}
