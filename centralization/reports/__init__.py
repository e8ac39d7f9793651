"""Report request forms: field schema, report registry and the request wizard."""
