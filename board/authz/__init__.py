"""Role policy: super-admin / admin / user decisions (pure, no I/O)."""
