"""Service layer: business operations over repositories and the gateway."""
