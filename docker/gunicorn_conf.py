import os

bind = f"0.0.0.0:{os.getenv('PORT','8000')}"
wsgi_app = "mealplanner.main:app"
# Shopping-list syncs are serialized per process; scale out with care.
workers = int(os.getenv("WEB_CONCURRENCY", "1")) or 1
worker_class = "uvicorn.workers.UvicornWorker"
timeout = int(os.getenv("TIMEOUT", "90"))
keepalive = 5
graceful_timeout = 30
accesslog = "-"
errorlog = "-"
loglevel = os.getenv("LOG_LEVEL", "info").lower()
