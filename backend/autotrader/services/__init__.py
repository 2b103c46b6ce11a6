"""Services: persistence (state store), exchange fill sync and reporting (performance stats)."""
