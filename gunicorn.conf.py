# gunicorn.conf.py

import multiprocessing
import os

# Entry point for the app factory
wsgi_app = "propdesk:create_app()"

# Bind to all network interfaces on the configured port
bind = f"0.0.0.0:{os.getenv('PORT', '8000')}"

# Workers = CPU cores * 2 + 1
workers = int(os.getenv("WEB_CONCURRENCY", multiprocessing.cpu_count() * 2 + 1))

# Requests mostly wait on the database
worker_class = "gevent"

backlog = 2048

# Timeout (seconds) before worker restart
timeout = 60
graceful_timeout = 30

# Logging
accesslog = "-"
errorlog = "-"
loglevel = os.getenv("LOG_LEVEL", "info").lower()

preload_app = True
