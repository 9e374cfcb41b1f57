"""
Relay - Discord Device Pairing Relay

This module implements a small backend that lets a desktop client adopt a Discord login
completed in a web browser. The desktop client never handles OAuth redirects itself; instead
the web front end exchanges the authorization code here, asks for a short-lived pairing code,
and the user types that code into the desktop client, which trades it for a long-lived
session token.

Key Components:
- app: Web application layer with request handlers and server configuration
- discord: Upstream Discord API client and OAuth token exchange
- model: In-memory pairing records, expiring stores and the health gauge

Architecture Overview:
1. Authorization Code Exchange:
   - Browser completes Discord OAuth and posts the code to the relay
   - Relay exchanges it for an access token and returns the user profile

2. Device Pairing:
   - Browser asks for a device code using the Discord access token
   - Desktop client claims the code and receives a session token

3. Passthrough:
   - Desktop client calls profile and guild lookups with its session token
   - Relay resolves the session to the Discord token and relays the response

All state lives in process memory and is lost on restart. Expired entries are swept by a
periodic background task.
"""
