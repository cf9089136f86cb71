"""HTTP API layer: routes, request/response schemas and middleware."""
