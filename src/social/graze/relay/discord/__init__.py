"""
Discord Integration

This package talks to the Discord HTTP API on behalf of the relay.

Key Components:
- client.py: Upstream HTTP client returning fully read responses that can be relayed
- oauth.py: Authorization code exchange and user profile projection

Only three upstream endpoints are used:
1. ``POST /oauth2/token`` to exchange an authorization code
2. ``GET /users/@me`` to identify the token owner
3. ``GET /users/@me/guilds`` to list the user's guilds

Responses are never retried. Non-2xx responses are handed back to the caller, which
reflects them to the client with the provider body attached.
"""
