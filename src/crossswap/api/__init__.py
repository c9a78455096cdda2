"""HTTP application and infrastructure endpoints."""
