"""
CLI Interface Module

Handles command-line argument parsing and runs the finder.
"""
import argparse
import logging
import sys

from rich.logging import RichHandler

from . import __version__, finder
from .client import SalesforceClient
from .config import config_path, edit_config, load_config
from .display import display_error, display_json, display_report, display_success, err_console
from .errors import SfindError


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='sfind',
        description="Quickly find entities in Salesforce, and show the matching "
                    "account, assets, opportunities and contacts.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  Find Salesforce entities by id:
    sfind 0012500001Lhk3hAAB

  Find Salesforce entities by contact email:
    sfind who@example.com

  Use JSON output:
    sfind 0012500001Lhk3hAAB --json

  Edit the configuration with the default editor:
    sfind config

Authentication:
  Set SF_USERNAME, SF_PASSWORD, SF_SECURITY_TOKEN and SF_DOMAIN (optional,
  'test' for sandboxes) in the environment or in a .env file. Alternatively
  set SF_SESSION_ID and SF_INSTANCE_URL.

Configuration:
  The configuration file declares additional fields that must be reported
  and string fields that must be matched when searching:

    fields:
      - Account.Foo__c
      - Contact.Birthdate
    search:
      - Account.Name
      - Opportunity.LeadSource

sfind works with accounts, assets, opportunities and contacts.
        """
    )

    parser.add_argument(
        '--version',
        action='version',
        version=f'%(prog)s {__version__}'
    )
    parser.add_argument('query', help="Record id or email address, or 'config' / 'help'")
    parser.add_argument('--json', action='store_true', help='Print the report as JSON')
    parser.add_argument('--config', metavar='PATH', help='Configuration file path')
    parser.add_argument('-v', '--verbose', action='store_true', help='Log Salesforce queries')
    return parser


def setup_logging(verbose: bool = False):
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=err_console, show_path=False)],
    )


def main(argv=None):
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(args.verbose)

    if args.query == 'help':
        parser.print_help()
        return 0

    path = config_path(args.config)

    try:
        if args.query == 'config':
            saved = edit_config(path)
            display_success(f"config saved to {saved}")
            return 0

        conf = load_config(path)
        client = SalesforceClient(timeout=conf.timeout)
        report = finder.run(client, args.query, conf)

        if args.json:
            display_json(report)
        else:
            display_report(report, instance_url=client.instance_url)
        return 0

    except KeyboardInterrupt:
        print("\n\nExiting...")
        return 0
    except SfindError as e:
        display_error(str(e))
        return 1


if __name__ == "__main__":
    sys.exit(main())
