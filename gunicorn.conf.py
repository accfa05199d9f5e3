"""
Gunicorn Configuration

    gunicorn portal_analytics.main:app -c gunicorn.conf.py
"""

import multiprocessing
import os

# Server socket
bind = os.getenv("BIND", "0.0.0.0:8000")
backlog = 2048

# Dashboard requests are I/O bound on the database; keep workers modest
workers = int(os.getenv("WORKERS", min(multiprocessing.cpu_count() * 2, 8)))
worker_class = "uvicorn.workers.UvicornWorker"
max_requests = 5000
max_requests_jitter = 500
timeout = 60
keepalive = 5
graceful_timeout = 30

proc_name = "portal-analytics-api"
daemon = False

# Logging: the app renders its own structured logs to stdout
errorlog = "-"
loglevel = os.getenv("LOG_LEVEL", "info").lower()
accesslog = None


def worker_abort(worker):
    """Called when a worker times out."""
    worker.log.warning("Worker aborted, pid=%s", worker.pid)
