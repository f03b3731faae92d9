"""Core request mediation: configuration, caching, throttling."""
