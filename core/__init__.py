"""Core proxy types: configuration, keys, state, authorization, headers."""
