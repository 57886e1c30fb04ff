"""Main entry point for the repository alerting agent"""

import argparse
import json
import sys

from repowatch import __version__
from repowatch.config.settings import load_config
from repowatch.utils.logger import setup_logger
from repowatch.agent import Agent


def parse_args(argv=None):
    """Parse command-line arguments"""
    parser = argparse.ArgumentParser(
        description='Alert evaluation and escalation engine for repository health metrics'
    )

    parser.add_argument(
        '--config',
        '-c',
        type=str,
        default=None,
        help='Path to configuration file (YAML)'
    )

    parser.add_argument(
        '--snapshots',
        '-s',
        type=str,
        default=None,
        help='Path to repository snapshots file (YAML or JSON)'
    )

    parser.add_argument(
        '--once',
        action='store_true',
        help='Evaluate snapshots once, print statistics and exit'
    )

    parser.add_argument(
        '--log-level',
        '-l',
        type=str,
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
        default=None,
        help='Override log level'
    )

    parser.add_argument(
        '--version',
        '-v',
        action='version',
        version=f'repowatch v{__version__}'
    )

    return parser.parse_args(argv)


def main(argv=None):
    """Main entry point"""
    args = parse_args(argv)

    try:
        # Load configuration
        config = load_config(args.config)

        # Override log level from command line
        if args.log_level:
            config['agent']['log_level'] = args.log_level

        logger = setup_logger(config)
        logger.info(f"repowatch v{__version__}")

        if args.config:
            logger.info(f"Loaded configuration from: {args.config}")
        else:
            logger.info("Using default configuration")

        agent = Agent(config, snapshots_file=args.snapshots)

        if args.once:
            stats = agent.run_once()
            agent.alert_manager.shutdown()
            print(json.dumps(stats, indent=2))
            return 0

        agent.start()
        return 0

    except KeyboardInterrupt:
        print("\nShutdown requested by user")
        return 0
    except Exception as e:
        print(f"Fatal error: {e}", file=sys.stderr)
        import traceback
        traceback.print_exc()
        return 1


if __name__ == '__main__':
    sys.exit(main())
