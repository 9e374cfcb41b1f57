"""
Relay Application Layer

This package implements the web application layer for the relay, handling HTTP requests
and responses using the aiohttp framework.

Key Components:
- cli.py: Entry point for running the application
- server.py: Web server configuration and middleware setup
- config.py: Configuration management using Pydantic settings
- handlers/: Request handlers for the public and internal endpoints
- tasks.py: Background tasks for expiry sweeping and health monitoring
- cors.py: CORS handling for cross-origin requests
- metrics.py: Metrics client abstraction

The application uses several middleware layers:
- CORS middleware for handling cross-origin requests
- Metrics middleware for request counts and timings
- Sentry middleware for error reporting

It provides the following main endpoints:
- Health endpoints (/api/health, /internal/alive, /internal/ready)
- OAuth code exchange (/api/auth/discord)
- Device pairing (/api/device/start, /api/device/claim)
- Discord passthrough (/api/me, /api/discord/guilds)
"""
