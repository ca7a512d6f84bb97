"""Engine core (pure Python, no Qt or browser imports)."""
