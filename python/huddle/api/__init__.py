"""HTTP API package: dependencies and route modules."""
