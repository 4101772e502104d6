"""
Rate limiting configuration.

The Limiter instance is created in techledger/__init__.py with no default
limits; this module applies limits per blueprint.

Usage:
    from techledger.middleware.rate_limiter import init_rate_limits
    init_rate_limits(app, limiter)
"""

# Entity blueprints; the limit covers every method on them
API_BLUEPRINTS = ("hierarchy", "actions", "sequences", "navigation", "links")


def init_rate_limits(app, limiter):
    """
    Apply rate limits to API blueprints.

    Limits (per remote IP):
        - Entity blueprints: RATELIMIT_API (default 60/minute)
        - Health check:      exempt

    Rate limiting is disabled in testing mode.
    """
    if app.config.get("TESTING"):
        app.logger.info("Rate limiter disabled (TESTING=True)")
        return

    api_limit = app.config.get("RATELIMIT_API", "60/minute")

    for bp_name in API_BLUEPRINTS:
        bp = app.blueprints.get(bp_name)
        if bp:
            limiter.limit(api_limit)(bp)

    bp = app.blueprints.get("health")
    if bp:
        limiter.exempt(bp)

    app.logger.info("Rate limiter configured: %s per API blueprint", api_limit)
