#!/usr/bin/env python3
"""
task-sync - reconcile local tasks with a remote task service.
"""

import argparse
import logging
import sys

from task_sync.core.config import load_config
from task_sync.core.exceptions import ConfigurationError
from task_sync.core.paths import PathManager
from task_sync.commands import StatusCommand, ApplyCommand, LogoutCommand


def main(argv=None):
    """Main entry point for task-sync."""
    parser = argparse.ArgumentParser(
        description="Reconcile local tasks with a remote task service",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  task-sync status                     # Show pending local changes
  task-sync apply remote.json          # Apply remote tasks and tags
  task-sync apply remote.json --dry-run
  task-sync logout --reset-watermark   # Disconnect and force a full resync
        """
    )

    parser.add_argument(
        '--config',
        help='Path to configuration file (default: <home>/config.json)',
        default=None
    )
    parser.add_argument(
        '--home',
        help='Working directory for config and data (overrides TASK_SYNC_HOME)',
        default=None
    )
    parser.add_argument(
        '--verbose', '-v',
        action='store_true',
        help='Verbose output'
    )

    subparsers = parser.add_subparsers(dest='command', help='Commands')

    subparsers.add_parser('status', help='Show sync watermark and pending changes')

    apply_parser = subparsers.add_parser('apply', help='Apply a file of remote changes')
    apply_parser.add_argument('payload', help='JSON file with remote tasks and tags')
    apply_parser.add_argument(
        '--dry-run',
        action='store_true',
        help='Show which tasks would be matched or created without saving'
    )

    logout_parser = subparsers.add_parser('logout', help='Clear remote ids on all tasks')
    logout_parser.add_argument(
        '--reset-watermark',
        action='store_true',
        help='Also reset the sync watermark so the next sync starts fresh'
    )

    args = parser.parse_args(argv)

    if args.verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        )

    if not args.command:
        parser.print_help()
        return 1

    manager = PathManager(base_dir=args.home)
    try:
        config = load_config(args.config, manager=manager)
    except ConfigurationError as e:
        print(f"Configuration error: {e}")
        return 1

    if args.verbose:
        print(f"Using config: {args.config or manager.config_path}")
        print(f"Using database: {config.database_path}")

    try:
        if args.command == 'status':
            success = StatusCommand(config, verbose=args.verbose).run()

        elif args.command == 'apply':
            cmd = ApplyCommand(config, verbose=args.verbose)
            success = cmd.run(payload_path=args.payload, dry_run=args.dry_run)

        elif args.command == 'logout':
            cmd = LogoutCommand(config, verbose=args.verbose)
            success = cmd.run(reset_watermark=args.reset_watermark)

        else:
            print(f"Unknown command '{args.command}'.")
            return 1

        return 0 if success else 1

    except KeyboardInterrupt:
        print("\nOperation cancelled by user.")
        return 130
    except Exception as e:
        print(f"Error: {e}")
        if not args.verbose:
            print("Re-run with --verbose for more detail.")
        else:
            import traceback
            traceback.print_exc()
        return 1


if __name__ == '__main__':
    sys.exit(main())
