"""
rate_limit.py — Global rate limiter instance.

Uses slowapi (a Starlette-compatible wrapper around the `limits` library).
Requests are keyed by client IP address.

Limited routes:
  POST /api/v1/reports        30/minute  (mobile submissions)
  POST /api/v1/social/scrape   2/minute  (each run fans out to several upstream APIs)

Usage in routes:
    @router.post("/some-endpoint")
    @limiter.limit("20/minute")
    async def my_endpoint(request: Request, payload: MyRequest):
        ...
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

limiter = Limiter(key_func=get_remote_address)
