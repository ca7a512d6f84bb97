"""Value models shared across the engine, hosts and control API."""
