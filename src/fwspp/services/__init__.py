"""
Shared utilities for outbound requests.

- http.py  - ``requests.Session`` with transport retry and default timeout
- retry.py - Backoff policy returning tagged failures instead of raising
"""
