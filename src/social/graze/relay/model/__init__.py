"""
In-Memory Models

This package defines the data structures the relay keeps in process memory. Nothing here
is persisted; a restart forgets every pairing code and session.

Key Models:
- pairing.py: Device codes, sessions, their token generators and expiring stores
- health.py: Health monitoring gauge

The records relate as follows:
- DeviceCode: Issued to a signed-in browser user, carries their Discord access token
- Session: Created when a device claims a DeviceCode, inherits its user and token

Every record carries an expiry timestamp. Lookups ignore expired records and a background
sweep removes them.
"""
