from flask_sqlalchemy import SQLAlchemy
from flask_login import LoginManager
from redis import Redis
from rq import Queue
from flask import current_app

# RQ keyword arguments that must not leak into a synchronous call
_RQ_KEYS = {'job_timeout', 'timeout', 'at_front', 'depends_on', 'result_ttl', 'ttl', 'meta', 'description'}


class RQWrapper:
    def __init__(self):
        self.redis = None
        self.queue = None

    def init_app(self, app):
        url = app.config.get("REDIS_URL")
        if not url:
            # tests and single-process setups run jobs inline
            self.redis = None
            self.queue = None
            return
        try:
            self.redis = Redis.from_url(url)
            self.queue = Queue("default", connection=self.redis)
        except Exception:
            app.logger.exception('Redis/RQ init failed, falling back to sync execution')
            self.redis = None
            self.queue = None

    def _run_inline(self, args, kwargs):
        func = args[0] if args else None
        if func is None:
            return None
        func_args = args[1:]
        safe_kwargs = {k: v for k, v in kwargs.items() if k not in _RQ_KEYS}
        return func(*func_args, **safe_kwargs)

    def enqueue(self, *args, **kwargs):
        # Prefer enqueueing to RQ, fall back to running the job in-process
        # when Redis is not reachable.
        if not self.queue:
            return self._run_inline(args, kwargs)
        try:
            return self.queue.enqueue(*args, **kwargs)
        except Exception:
            current_app.logger.exception('RQ enqueue failed, falling back to sync execution')
            return self._run_inline(args, kwargs)


db = SQLAlchemy()
login_manager = LoginManager()
rq = RQWrapper()
