"""
TrabajaTecnico Backend — Middleware Package
============================================

Middleware Chain:
    Request → [Request ID] → [Logging] → [GZip] → [CORS] → Route Handler

    1. Request ID first so every later log line can carry it
    2. Logging records method, path, status and duration
    3. CORS is FastAPI's CORSMiddleware (handles preflight)

Rate limiting and security headers are applied by the reverse proxy in
front of this service.
"""
