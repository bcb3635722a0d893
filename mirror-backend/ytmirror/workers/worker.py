from rq import Worker
import ytmirror.core.logging  # noqa: F401  configures logging on import
from ytmirror.workers.queue import sync_queue, redis_conn

if __name__ == "__main__":
    w = Worker([sync_queue], connection=redis_conn)
    w.work()
