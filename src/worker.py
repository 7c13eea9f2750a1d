"""RQ worker process entrypoint for webhook jobs."""

from rq import Worker

from src.modules.webhooks.queue import get_redis_connection
from src.utils.logger import setup_logging
from src.utils.settings.app import AppSettings
from src.utils.settings.queue import QueueSettings


def main():
    setup_logging(AppSettings().ENVIRONMENT.upper() == "PROD")
    redis_conn = get_redis_connection()
    worker = Worker([QueueSettings().WEBHOOK_QUEUE_NAME], connection=redis_conn)
    # The scheduler promotes delayed retries back onto the queue
    worker.work(with_scheduler=True)


if __name__ == "__main__":
    main()
