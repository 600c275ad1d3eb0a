"""
ChatKit Token Service package.

The service sits between browser clients and the OpenAI Realtime API and
hands out short-lived session credentials, so the long-lived API key never
leaves the server. It enforces:
- Per-IP rate limiting: in-process token buckets with lazy refill
- Request validation before any upstream call
- Generic error bodies; upstream failure detail stays in the logs

Structure:
- app.main: FastAPI app and lifecycle wiring.
- app.domain: Request router, request/response models, CORS headers.
- app.adapters: HTTP client for the upstream session endpoint.
- app.ratelimit: Token-bucket store, admission controller, sweeper.

Design notes:
- Module import must not perform network calls or start tasks; the
  sweeper starts in the FastAPI startup hook.
- All state is process-local and ephemeral.
"""

APP_VERSION = "1.0.0"
