"""
Gunicorn configuration for the Wellio API.

Env vars that override defaults:
  PORT     — TCP port to bind (the platform sets this automatically)
  WORKERS  — number of worker processes (default: 1)

Every worker runs its own reminder scheduler when
REMINDER_SCHEDULER_ENABLED is true. Keep WORKERS at 1 on the instance that
sends reminders, or disable the scheduler on the extra instances; the
unique (client_id, reminder_type, sent_date) constraint still stops a
second process from recording the same reminder twice.
"""
import os

bind = f"0.0.0.0:{os.environ.get('PORT', '8000')}"

workers = int(os.environ.get("WORKERS", "1"))

# Each worker runs Uvicorn's ASGI event loop inside Gunicorn's process manager.
worker_class = "uvicorn.workers.UvicornWorker"

keepalive = 5

# LLM summaries can take a while; kill only workers stuck well past that.
timeout = 120

# stdout only; the app itself logs JSON lines in production.
loglevel = os.environ.get("LOG_LEVEL", "info").lower()
accesslog = "-"
errorlog = "-"
access_log_format = '%(h)s "%(r)s" %(s)s %(b)sB %(D)sµs'

# Wait up to 30 s for in-flight requests (and the scheduler task) to finish.
graceful_timeout = 30
