"""
HTTP Cat caching proxy service.

Structure:
- app.main: FastAPI service, the catch-all proxy route and the CLI.
- app.keys: 3-digit key parsing.
- app.domain: Request coordinator (read/fetch/populate, write, delete).
- app.storage: Cache stores (filesystem, in-memory).
- app.adapters: Upstream HTTP client.
"""
