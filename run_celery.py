import threading
from propdesk import create_app, celery
import propdesk.scheduler  # noqa: F401  registers the beat schedule

app = create_app()

def start_api():
    """Serve the API from a background thread; the worker needs the main thread for its signal handlers."""
    threading.Thread(
        target=lambda: app.run(host="0.0.0.0", port=5000, use_reloader=False),
        daemon=True,
    ).start()

def start_celery():
    """Start a Celery worker with an embedded beat scheduler."""
    worker = celery.Worker(beat=True, loglevel="INFO")
    worker.start()

if __name__ == "__main__":
    start_api()
    start_celery()
