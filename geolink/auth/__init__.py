"""Authentication: bearer tokens, API keys, and role checks."""
