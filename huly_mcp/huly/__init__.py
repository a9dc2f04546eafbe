"""HTTP clients for the Huly platform services."""
