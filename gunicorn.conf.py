"""
Gunicorn configuration for Playbook Studio
Usage: gunicorn -c gunicorn.conf.py wsgi:app
"""

import multiprocessing
import os

# Server socket
port = int(os.environ.get('PORT', 8080))
bind = f"0.0.0.0:{port}"

# Workers
# Rendering is CPU-bound, so one sync worker per core
workers = int(os.environ.get('GUNICORN_WORKERS', multiprocessing.cpu_count() + 1))
worker_class = 'sync'
timeout = int(os.environ.get('GUNICORN_TIMEOUT', 120))
graceful_timeout = 30

# Logging
accesslog = os.environ.get('GUNICORN_ACCESS_LOG', '-')  # '-' means stdout
errorlog = os.environ.get('GUNICORN_ERROR_LOG', '-')  # '-' means stderr
loglevel = os.environ.get('GUNICORN_LOG_LEVEL', 'info')

proc_name = 'playbook-studio'

# Recycle workers to bound memory held by reportlab and Pillow buffers
max_requests = int(os.environ.get('GUNICORN_MAX_REQUESTS', 200))
max_requests_jitter = 20
preload_app = True

# Request limits (bodies are capped by MAX_CONTENT_LENGTH in the app)
limit_request_line = 4094
limit_request_fields = 100


def when_ready(server):
    """Called just after the server is started"""
    server.log.info("Playbook Studio server is ready. Accepting connections.")


def post_fork(server, worker):
    """Called just after a worker has been forked"""
    server.log.info("Worker spawned (pid: %s)", worker.pid)
