#!/usr/bin/env python
"""
sfind - Main Entry Point

Quickly find entities in Salesforce, and show the matching account, assets,
opportunities and contacts.

Usage:
    python sfind.py 0012500001Lhk3hAAB         # Find by record id
    python sfind.py who@example.com            # Find by contact email
    python sfind.py who@example.com --json     # JSON output
    python sfind.py config                     # Edit the configuration

For detailed help:
    python sfind.py --help
"""
import sys
from sfind.cli import main

if __name__ == "__main__":
    sys.exit(main())
