# Gunicorn configuration
# Reminder timers live in-process: run exactly one worker so a single
# scheduler owns the armed reminders.
wsgi_app = "contestbot:create_app('production')"
bind = "0.0.0.0:8000"
workers = 1
threads = 4
worker_class = "gthread"
timeout = 120
keepalive = 5
errorlog = "-"
accesslog = "-"
loglevel = "info"
