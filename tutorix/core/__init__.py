"""Core infrastructure: errors, logging, middleware, roles, caching."""
