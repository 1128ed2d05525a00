"""Realtime infrastructure for the live attendance session.

Holds the Socket.IO server, the registry of authenticated connections, the
fan-out helper and the command dispatcher that drives the roll call.
"""
