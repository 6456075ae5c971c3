"""Real-time hub — presence and live message delivery over WebSocket.

Learn: Everything here is in-process and in-memory:
- registry.py   who is connected as whom
- presence.py   push the online list on every change
- router.py     persist + forward sendMessage events
- hub.py        per-connection lifecycle, ties the three together

Restarting the process drops all presence; clients reconnect and
re-announce themselves with addUser.
"""
