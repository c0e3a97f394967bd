# run.py
import os
import sys

from gunicorn.app.wsgiapp import WSGIApplication


def main():
    sys.path.insert(0, os.getcwd())

    options = {
        "bind": os.getenv("BIND", "0.0.0.0:8000"),
        "workers": int(os.getenv("WEB_CONCURRENCY", "2")),
        "worker_class": "uvicorn.workers.UvicornWorker",
        "proc_name": "deal_feed_poller",
    }

    WSGIApplication("%(prog)s [OPTIONS] [APP_MODULE]").run(
        app_uri="dealfeed.main:app",
        config_update=options
    )


if __name__ == "__main__":
    main()
