"""Authentication.

Users log in with username/password and receive a JWT access token.
The same token authenticates REST calls (Authorization: Bearer) and,
optionally, the WebSocket connection (?token=).
"""
