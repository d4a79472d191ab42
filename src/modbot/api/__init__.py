"""HTTP API for ModBot."""
