"""
Gunicorn Configuration for SpendMeter
Production WSGI server settings

Run with:
    gunicorn -c deployment/gunicorn_config.py "app:create_app('production')"
"""
import multiprocessing
import os

APP_HOME = os.environ.get('SPENDMETER_HOME', '/home/spendmeter/app')

# Server Socket (nginx terminates TLS in front of this)
bind = os.environ.get('SPENDMETER_BIND', '127.0.0.1:8000')
backlog = 2048

# Worker Processes
# Rollover and recurring posting are safe across workers: the database's
# unique indexes decide races, not in-process state.
workers = int(os.environ.get('WEB_CONCURRENCY', multiprocessing.cpu_count() * 2 + 1))
worker_class = 'sync'
max_requests = 1000
max_requests_jitter = 50
timeout = 30
keepalive = 5

# Logging
accesslog = os.path.join(APP_HOME, 'logs', 'gunicorn_access.log')
errorlog = os.path.join(APP_HOME, 'logs', 'gunicorn_error.log')
loglevel = os.environ.get('SPENDMETER_LOG_LEVEL', 'info')
access_log_format = '%(h)s %(u)s %(t)s "%(r)s" %(s)s %(b)s %(D)s'

proc_name = 'spendmeter'
pidfile = os.path.join(APP_HOME, 'gunicorn.pid')
umask = 0o007

# Security
limit_request_line = 4094
limit_request_fields = 100
limit_request_field_size = 8190


def when_ready(server):
    server.log.info("SpendMeter ready, civil timezone %s", os.environ.get('CIVIL_TIMEZONE', 'Asia/Dubai'))


def post_fork(server, worker):
    server.log.info("Worker spawned (pid: %s)", worker.pid)


def worker_abort(worker):
    """Called when a worker times out"""
    worker.log.warning("worker %s aborted (timeout)", worker.pid)
