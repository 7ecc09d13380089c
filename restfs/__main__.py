"""
restfs: serve a directory over HTTP with soft deletes
"""

import argparse
import logging
import sys

import uvicorn

from restfs.config import ENV_PREFIX, get_settings, validate_settings
from restfs.gc import Reconciler


def run(args):
    settings = get_settings()
    if args.port:
        settings.port = int(args.port)
    if args.host:
        settings.host = args.host
    logging.info(f"Starting server at {settings.host}:{settings.port}, debug={not args.nodebug}")
    if warning := validate_settings(settings):
        logging.warning(warning)
    logging.info(
        "To change server config, create an .env file and/or set environment parameters,\n"
        f"{' ' * 26}see restfs/config.py for more information.\n"
    )
    uvicorn.run(
        "restfs.api:create_app",
        factory=True,
        host=settings.host,
        port=settings.port,
        reload=not args.nodebug,
        # restfs writes its own access log, see restfs.api.middleware
        access_log=False,
        timeout_graceful_shutdown=int(settings.graceful_timeout),
    )


def gc(_args):
    settings = get_settings()
    if not settings.data_dir.is_dir():
        logging.error(f"Data directory {settings.data_dir} does not exist")
        sys.exit(1)
    result = Reconciler(settings.data_dir).run_pass()
    print(
        f"Deleted {len(result.deleted)}, resurrected {len(result.resurrected)}, "
        f"orphaned {len(result.orphaned)} in {result.duration:.3f}s"
    )
    if not result.ok:
        sys.exit(1)


def config(_args):
    for k, v in get_settings().model_dump().items():
        print(f"{ENV_PREFIX.upper()}{k.upper()}={v if v is not None else ''}")


def main():
    parser = argparse.ArgumentParser(description=__doc__, prog="python -m restfs")

    subparsers = parser.add_subparsers(dest="action", title="action", help="Action to perform:", required=True)
    p = subparsers.add_parser("run", help="Run the restfs server")
    p.add_argument(
        "--no-debug",
        action="store_true",
        dest="nodebug",
        help="Disable debug mode (no automatic reload on code changes)",
    )
    p.add_argument("-p", "--port", help="Port (default: from settings)")
    p.add_argument("--host", help="Address to listen on (default: from settings)")
    p.set_defaults(func=run)

    p = subparsers.add_parser("gc", help="Run one garbage collection pass on the data directory and exit")
    p.set_defaults(func=gc)

    p = subparsers.add_parser("config", help="Show the current settings")
    p.set_defaults(func=config)

    args = parser.parse_args()

    logging.basicConfig(format="[%(levelname)-7s:%(name)-15s] %(message)s", level=logging.INFO)
    args.func(args)


if __name__ == "__main__":
    main()
