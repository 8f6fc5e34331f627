"""
Gunicorn configuration for the SMS Template Sandbox

Run from the server directory:
    gunicorn -c gunicorn.conf.py "template_sandbox:create_app()"

Templates and seen nonces are kept in process memory, so the sandbox runs a
single worker with threads.
"""

import os

# Server socket
bind = f"127.0.0.1:{os.environ.get('PORT', 5000)}"
backlog = 2048

# One process so every request sees the same in-memory templates
workers = 1
worker_class = 'gthread'
threads = int(os.environ.get('GUNICORN_THREADS', 4))
timeout = 30
keepalive = 2

# Logging
accesslog = os.environ.get('GUNICORN_ACCESS_LOG', '-')
errorlog = os.environ.get('GUNICORN_ERROR_LOG', '-')
loglevel = os.environ.get('GUNICORN_LOG_LEVEL', 'info')
access_log_format = '%(h)s %(l)s %(u)s %(t)s "%(r)s" %(s)s %(b)s "%(f)s" "%(a)s" %(D)s'

# Process naming
proc_name = 'sms-template-sandbox'

# Server mechanics
daemon = False
pidfile = '/tmp/sms-template-sandbox.pid'
tmp_upload_dir = None

# Security
limit_request_line = 4094
limit_request_fields = 100
limit_request_field_size = 8190

# Graceful timeout for worker shutdown
graceful_timeout = 30

# Environment variables to pass to workers
raw_env = [
    f'LOG_LEVEL={os.environ.get("LOG_LEVEL", "INFO")}',
    f'SMST_APPS_PATH={os.environ.get("SMST_APPS_PATH", "/app/auth/apps.json")}',
]
