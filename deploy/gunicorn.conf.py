"""Gunicorn configuration for the reading progress service.

Usage:
    gunicorn main:app -c deploy/gunicorn.conf.py

Every request is a handful of short fact-store round trips, so workers
are I/O bound.  Run with ``FACT_STORE_TYPE=rest``: the in-memory store is
per-process and would give every worker its own data.
"""

import multiprocessing
import os

# ─── Server socket ──────────────────────────────────────────────

bind = os.getenv("BIND", "0.0.0.0:5000")
backlog = 2048

# ─── Worker processes ───────────────────────────────────────────

workers = int(os.getenv("WORKERS", min(multiprocessing.cpu_count(), 4)))
worker_class = "uvicorn.workers.UvicornWorker"

# ─── Timeouts ───────────────────────────────────────────────────
#
# The slowest call is a refresh pass over every text of a student
# (two reads per text); keep well above FACT_STORE_TIMEOUT.

timeout = 60
graceful_timeout = 30
keepalive = 5

max_requests = 5000
max_requests_jitter = 500

# ─── Logging ────────────────────────────────────────────────────

accesslog = "-"
errorlog = "-"
loglevel = os.getenv("LOG_LEVEL", "info")

proc_name = "reading-progress-service"


def on_starting(server):
    """Called just before the master process is initialized."""
    server.log.info(
        "Starting reading progress service — workers=%d, timeout=%ds, bind=%s",
        workers,
        timeout,
        bind,
    )
