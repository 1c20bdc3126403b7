"""
Revalidation Gateway Service package (storefront side).

Receives authenticated revalidation requests from the commerce backend and
marks the affected cached pages stale.

Structure:
- app.main: FastAPI app and the /api/revalidate route.
- app.domain: Request state machine and its error types.
- app.tags: Tag registry (tag -> page path specs).
- app.invalidation: Cache invalidation backends (memory, Redis).
"""
