#!/usr/bin/env python3
"""
Worker RQ avec logging JSON structuré.
Usage: python worker.py [queue_name ...]
"""
import sys

import redis
from rq import Worker, Queue

# Setup structured logging avant tout
from app.core.config import LOG_LEVEL, REDIS_URL
from app.core.logging import setup_logging
setup_logging(level=LOG_LEVEL)

DEFAULT_QUEUES = ["default", "low"]


def main():
    queue_names = sys.argv[1:] or DEFAULT_QUEUES
    redis_conn = redis.from_url(REDIS_URL)

    queues = [Queue(name, connection=redis_conn) for name in queue_names]
    worker = Worker(queues, connection=redis_conn)
    worker.work()


if __name__ == "__main__":
    main()
