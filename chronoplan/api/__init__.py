"""HTTP API for chronoplan (aiohttp)."""
