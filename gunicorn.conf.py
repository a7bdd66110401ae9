"""
Gunicorn configuration for the BuddyLoop API.

Env vars that override defaults:
  PORT     — TCP port to bind
  WORKERS  — number of worker processes (default: 1)
"""
import os

bind = f"0.0.0.0:{os.environ.get('PORT', '8000')}"

# Throttle counters, cooldown clocks and balances live in process memory.
# More than one worker splits that state; raise only with a shared TrackingStore.
workers = int(os.environ.get("WORKERS", "1"))

# Each worker runs Uvicorn's ASGI event loop inside Gunicorn's process manager.
worker_class = "uvicorn.workers.UvicornWorker"

keepalive = 5

# Copy-service calls are bounded by LLM_TIMEOUT_SECONDS; this is the outer limit.
timeout = 60

# Application logs are JSON lines from Loguru; Gunicorn's own logs go to stdout too.
loglevel = "info"
accesslog = "-"
errorlog = "-"
access_log_format = '%(h)s "%(r)s" %(s)s %(b)sB %(D)sµs'

graceful_timeout = 30
