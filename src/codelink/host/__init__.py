"""Local control API and the daemon that serves it."""
