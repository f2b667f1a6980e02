# bookmarksync/cli.py

import argparse
import json
import logging
import sys
from pathlib import Path

from bookmarksync.client import Client
from bookmarksync.config import ClientConfig
from bookmarksync.constants import KEY_SOURCE_PLATFORM, KEY_SOURCE_USER
from bookmarksync.models import Snapshot
from bookmarksync.settings import SyncSettings, load_sync_settings, save_sync_settings


logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='Bookmark snapshot sync client')
    parser.add_argument('--storage-dir', help='Directory holding the local storage files')
    parser.add_argument('--server', help='Sync key/value server address (e.g., 127.0.0.1:5000)')
    parser.add_argument('--namespace', help='Namespace on the sync server')
    parser.add_argument('--log-level', help='Logging level (default: INFO)')

    subparsers = parser.add_subparsers(dest='command', required=True)

    # PUSH
    push_parser = subparsers.add_parser('push', help='Store a snapshot JSON file')
    push_parser.add_argument('file', help='Snapshot file with "merged" and "categorized" lists')

    # PULL
    pull_parser = subparsers.add_parser('pull', help='Load the stored snapshot')
    pull_parser.add_argument('--output', help='Output file to write to (default: stdout)')

    # SETTINGS
    settings_parser = subparsers.add_parser('settings', help='Show or change sync settings')
    toggle = settings_parser.add_mutually_exclusive_group()
    toggle.add_argument('--enable', action='store_true', help='Enable synchronization')
    toggle.add_argument('--disable', action='store_true', help='Disable synchronization')
    source = settings_parser.add_mutually_exclusive_group()
    source.add_argument('--secret', help='Encrypt with a key derived from this passphrase')
    source.add_argument('--platform', action='store_true', help='Encrypt with the device secret')

    return parser


def resolve_config(args) -> ClientConfig:
    config = ClientConfig.from_env()
    return ClientConfig(
        storage_dir=Path(args.storage_dir).expanduser() if args.storage_dir else config.storage_dir,
        server=args.server or config.server,
        namespace=args.namespace or config.namespace,
        log_level=(args.log_level or config.log_level).upper(),
    )


def update_settings(current: SyncSettings, args) -> SyncSettings:
    enabled = current.enabled
    if args.enable:
        enabled = True
    elif args.disable:
        enabled = False

    key_source, secret = current.key_source, current.secret
    if args.secret is not None:
        key_source, secret = KEY_SOURCE_USER, args.secret
    elif args.platform:
        key_source, secret = KEY_SOURCE_PLATFORM, None
    return SyncSettings(enabled=enabled, key_source=key_source, secret=secret)


def main(argv=None):
    args = build_parser().parse_args(argv)
    config = resolve_config(args)

    # Basic logging setup
    logging.basicConfig(
        level=getattr(logging, config.log_level, logging.INFO),
        format="%(asctime)s,%(levelname)s,%(name)s,%(message)s",
    )

    client = Client.from_config(config)

    try:
        if args.command == 'push':
            logger.debug("CLI,PUSH,START,file=%s", args.file)
            with open(args.file, 'r', encoding='utf-8') as f:
                snapshot = Snapshot.from_dict(json.load(f))
            payload = client.persist(snapshot)
            logger.info("CLI,PUSH,END,SUCCESS,file=%s,kind=%s", args.file, payload["kind"])

        elif args.command == 'pull':
            logger.debug("CLI,PULL,START")
            snapshot = client.hydrate()
            if snapshot is None:
                logger.info("CLI,PULL,END,EMPTY")
                return 0
            text = json.dumps(snapshot.to_dict(), indent=2, ensure_ascii=False)
            if args.output:
                with open(args.output, 'w', encoding='utf-8') as f:
                    f.write(text)
                logger.info("CLI,PULL,END,SUCCESS,output=%s,merged=%d,categorized=%d",
                            args.output, len(snapshot.merged), len(snapshot.categorized))
            else:
                sys.stdout.write(text + "\n")

        elif args.command == 'settings':
            settings = load_sync_settings(client.areas)
            if args.enable or args.disable or args.secret is not None or args.platform:
                settings = save_sync_settings(client.areas, update_settings(settings, args))
            sys.stdout.write(json.dumps({"enabled": settings.enabled, "keySource": settings.key_source}) + "\n")

    except Exception as e:
        logger.exception("CLI,%s,ERROR,%s", args.command.upper(), e)
        return 1

    return 0


if __name__ == '__main__':
    sys.exit(main())
